"""Live query streams, state holders and subscription scopes."""

from pocketledger.reactive.streams import (
    ChangeListener,
    ChangeNotifier,
    LiveQuery,
    StateHolder,
    combine_latest,
)
from pocketledger.reactive.scope import (
    ScopeClosedError,
    Subscription,
    SubscriptionScope,
)

__all__ = [
    "ChangeListener",
    "ChangeNotifier",
    "LiveQuery",
    "StateHolder",
    "combine_latest",
    "ScopeClosedError",
    "Subscription",
    "SubscriptionScope",
]
