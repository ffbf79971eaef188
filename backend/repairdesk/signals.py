"""View refresh hints emitted after successful mutations.

Presentation layers subscribe to ``views_stale`` and refetch the listed paths:

    from repairdesk.signals import views_stale

    @views_stale.connect
    def on_stale(sender, paths, **extra):
        ...

Delivery is best effort. A failing receiver is logged and never turns a
committed mutation into an error for the caller.
"""
from __future__ import annotations

import logging
from blinker import Namespace

logger = logging.getLogger(__name__)

_signals = Namespace()

views_stale = _signals.signal('views-stale')


def mark_stale(sender, *paths: str):
    unique = list(dict.fromkeys(paths))
    try:
        views_stale.send(sender, paths=unique)
    except Exception:
        logger.exception('views-stale receiver failed for %s', unique)
    return unique
