"""Shared API dependencies.

Services are built once in the app lifespan and hung off `app.state`.
"""

from fastapi import Request

from tradejournal.services.ingestion import IngestionGateway
from tradejournal.services.learning_log import LearningLog
from tradejournal.services.memory import MemoryReplica
from tradejournal.services.pattern_detector import PatternDetector
from tradejournal.services.signal_store import SignalStore
from tradejournal.services.stats import StatsAggregator
from tradejournal.services.trade_store import TradeStore


def get_gateway(request: Request) -> IngestionGateway:
    return request.app.state.gateway


def get_trade_store(request: Request) -> TradeStore:
    return request.app.state.gateway.trades


def get_signal_store(request: Request) -> SignalStore:
    return request.app.state.gateway.signals


def get_learning_log(request: Request) -> LearningLog:
    return request.app.state.gateway.learning


def get_memory(request: Request) -> MemoryReplica:
    return request.app.state.gateway.memory


def get_stats(request: Request) -> StatsAggregator:
    return request.app.state.gateway.stats


def get_detector(request: Request) -> PatternDetector:
    return request.app.state.gateway.detector
