"""Job admission, connectivity tracking and the optional remote path."""

from .connectivity import ConnectivityState, ConnectivityStateMachine
from .remote import RemoteAssistClient, RemoteGateway
from .scheduler import AnalysisScheduler

__all__ = [
    "AnalysisScheduler",
    "ConnectivityState",
    "ConnectivityStateMachine",
    "RemoteAssistClient",
    "RemoteGateway",
]
