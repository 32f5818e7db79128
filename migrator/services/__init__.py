"""Services for the migration engine."""
from .classifier import classify
from .enumerator import WorkEnumerator, prefix_predicate
from .progress_store import ProgressStore
from .remote_client import HTTPStorageClient, RpcEndpoint, detect_rpc_endpoint

__all__ = [
    "classify",
    "WorkEnumerator",
    "prefix_predicate",
    "ProgressStore",
    "HTTPStorageClient",
    "RpcEndpoint",
    "detect_rpc_endpoint",
]
