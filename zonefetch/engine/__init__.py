"""Engine components orchestrating list → filter → fetch → parse → write."""

from .channel import CancelToken, Cancelled, Channel, ChannelClosed
from .decompress import GzipDecompressor
from .entries import RemoteEntry, dedupe_by_name, filter_canonical, order_by_size
from .listing import ListingFetcher
from .parser import RecordParseError, ZoneParser, ZoneRecord
from .task import DownloadAndParseTask, EntryOutcome
from .transfer import FtpSession, FtpSessionFactory, SessionFactory, TransferSession
from .worker_pool import WorkerPool
from .writer import OutputWriter, normalize_line

__all__ = [
    "CancelToken",
    "Cancelled",
    "Channel",
    "ChannelClosed",
    "DownloadAndParseTask",
    "EntryOutcome",
    "FtpSession",
    "FtpSessionFactory",
    "GzipDecompressor",
    "ListingFetcher",
    "OutputWriter",
    "RecordParseError",
    "RemoteEntry",
    "SessionFactory",
    "TransferSession",
    "WorkerPool",
    "ZoneParser",
    "ZoneRecord",
    "dedupe_by_name",
    "filter_canonical",
    "normalize_line",
    "order_by_size",
]
