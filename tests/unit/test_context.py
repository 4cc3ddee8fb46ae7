"""
Unit tests for request context.
"""

import time

import pytest

from baremetal_csi.common.context import REQUEST_ID, RequestContext


@pytest.mark.unit
def test_background_never_done():
    ctx = RequestContext.background()
    assert ctx.done() is False
    assert ctx.deadline is None
    assert ctx.value(REQUEST_ID) is None


@pytest.mark.unit
def test_timeout_expires():
    ctx = RequestContext.background().with_timeout(0)
    assert ctx.done() is True

    ctx = RequestContext.background().with_timeout(0.01)
    time.sleep(0.02)
    assert ctx.done() is True


@pytest.mark.unit
def test_earliest_deadline_wins():
    parent = RequestContext.background().with_timeout(1)
    child = parent.with_timeout(100)
    assert child.deadline == parent.deadline

    shorter = parent.with_timeout(0.5)
    assert shorter.deadline < parent.deadline


@pytest.mark.unit
def test_cancel_propagates_to_children_only():
    parent = RequestContext.background()
    child = parent.with_value(REQUEST_ID, "pvc-1")

    child.cancel()
    assert child.done() is True
    assert parent.done() is False

    other_child = parent.with_timeout(10)
    parent.cancel()
    assert other_child.done() is True


@pytest.mark.unit
def test_values_chain():
    ctx = RequestContext.background().with_value(REQUEST_ID, "pvc-1").with_value("node", "node-1")
    assert ctx.value(REQUEST_ID) == "pvc-1"
    assert ctx.value("node") == "node-1"
    assert ctx.with_value(REQUEST_ID, "pvc-2").value(REQUEST_ID) == "pvc-2"
    assert ctx.value("missing") is None
