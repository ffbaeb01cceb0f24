from .reconciler import (
    BotIdentity,
    ChannelAccessReconciler,
    ChannelAccessState,
    ChannelInfo,
    Reconciliation,
)

__all__ = [
    "BotIdentity",
    "ChannelAccessReconciler",
    "ChannelAccessState",
    "ChannelInfo",
    "Reconciliation",
]
