"""tunnelsync - Connection-status synchronization for an SSH tunnel client."""

__version__ = "0.1.0"
__author__ = "tunnelsync contributors"
__description__ = "Turns SSH tunnel supervisor signals into a consistent, observable status model"

from tunnelsync.core.connection_manager import ConnectionManager
from tunnelsync.core.subscription_manager import SubscriptionManager

__all__ = ["ConnectionManager", "SubscriptionManager", "__version__"]
