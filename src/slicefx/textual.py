"""Drive Textual widgets from slicefx subscriptions. Requires textual.

    sub = bind(app, scope, lambda n: app.query_one("#count").update(str(n)),
               keys=["count"], mutation=lambda s: s["count"])

A bound effect receives each new subscription value. It is dropped while
the app is not running or its widgets are being swapped (see pause()),
runs on the app's thread even when the update came from a worker, and a
widget that is not mounted yet (NoMatches) is skipped rather than raised.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from slicefx.enabled import Enabled
from slicefx.subscription import subscribe

# id(app) of every app currently inside a pause() block.
_suspended: set[int] = set()


@contextmanager
def pause(app):
    """Drop bound effects for app while its widget tree is rebuilt."""
    _suspended.add(id(app))
    try:
        yield
    finally:
        _suspended.discard(id(app))


def is_safe(app) -> bool:
    """True when app is running and not paused, so widget queries can run."""
    return app.is_running and id(app) not in _suspended


def _widget_effect(app, effect):
    """Wrap effect for delivery from any thread into app."""
    owner = threading.get_ident()

    def run(value):
        try:
            effect(value)
        except NoMatches:
            return

    def deliver(value):
        if not is_safe(app):
            return
        if threading.get_ident() == owner:
            run(value)
        else:
            app.call_from_thread(run, value)

    return deliver


def bind(app, scope, effect, *, keys=None, mutation=None, enabled=Enabled.ALWAYS, fire_immediately=True):
    """Subscribe to scope and call effect(value) on every change.

    With fire_immediately the current value is delivered right away. The
    subscription is hydrated once the app has refreshed, which is when an
    after-hydration binding moves from the initial data to the live store.
    Returns the Subscription; close() it to unbind.
    """
    subscription = subscribe(scope, keys=keys, mutation=mutation, enabled=enabled)
    deliver = _widget_effect(app, effect)
    if fire_immediately:
        deliver(subscription.snapshot())
    subscription.observe(deliver)
    app.call_after_refresh(subscription.hydrate)
    return subscription
