"""Tests for moderation status transitions."""

import pytest

from models import WordStatus
from services import moderation
from services.errors import InvalidTransition, ValidationError


def test_initial_status_is_pending():
    assert moderation.INITIAL_STATUS is WordStatus.PENDING


@pytest.mark.parametrize("current", ["Pending", "Hidden", "Approved"])
def test_approve_from_any_state(current):
    assert moderation.approve(current) is WordStatus.APPROVED


@pytest.mark.parametrize("current", ["Pending", "Approved", "Hidden"])
def test_hide_from_any_state(current):
    assert moderation.hide(current) is WordStatus.HIDDEN


@pytest.mark.parametrize("current", ["Approved", "Hidden"])
def test_no_way_back_to_pending(current):
    with pytest.raises(InvalidTransition):
        moderation.transition(current, "Pending")


@pytest.mark.parametrize("current", ["Pending", "Approved", "Hidden"])
def test_move_always_approves(current):
    category_id, status = moderation.move(current, 7)

    assert category_id == 7
    assert status is WordStatus.APPROVED


def test_unknown_status_is_rejected():
    with pytest.raises(ValidationError):
        moderation.transition("Pending", "Published")


@pytest.mark.parametrize("current", ["Pending", "Approved", "Hidden"])
def test_same_status_is_kept(current):
    assert moderation.transition(current, current).value == current
