# timeleave_api/services/hooks.py
"""
Post-commit change signals for dependent views (queues, dashboards, caches).

Receivers run after the core's own transaction has committed; a failing
receiver is logged and never changes the operation's outcome.
"""
import logging

from blinker import Namespace

log = logging.getLogger(__name__)

_signals = Namespace()

request_changed = _signals.signal("request-changed")
attendance_changed = _signals.signal("attendance-changed")
balances_changed = _signals.signal("balances-changed")


def emit(signal, sender, **payload):
    try:
        signal.send(sender, **payload)
    except Exception:
        log.exception("receiver of %s failed for %r", signal.name, payload)
