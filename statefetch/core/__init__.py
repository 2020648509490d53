from .builder import Builder, overlay
from .config import Mode, OfflineConfig, OnlineConfig, Transport
from .events import EventBus
from .externalities import Externalities, apply_pairs
from .scraper import RemoteScraper

__all__ = [
    "Builder",
    "overlay",
    "Mode",
    "OnlineConfig",
    "OfflineConfig",
    "Transport",
    "EventBus",
    "Externalities",
    "apply_pairs",
    "RemoteScraper",
]
