from huddle.models.notification import RESOLVABLE_TYPES, Notification, NotificationType


def _notification(**fields) -> Notification:
    defaults = {
        "user_id": "u1",
        "type": NotificationType.team_removal.value,
        "title": "Removed from Team",
        "message": "You have been removed from 'Core'",
        "action_hash": "team_removal:u1:t1",
    }
    return Notification(**{**defaults, **fields})


def test_defaults():
    n = _notification()
    assert n.occurrence_count == 1
    assert n.is_read is False
    assert n.is_deleted is False
    assert n.is_resolved is False
    assert n.metadata_json == {}
    assert n.last_occurrence is not None


def test_display_message_counts_repeated_removals():
    assert _notification().display_message == "You have been removed from 'Core'"
    repeated = _notification(occurrence_count=3)
    assert repeated.is_repeated
    assert repeated.display_message == "You have been removed from 'Core' (3 times)"


def test_other_kinds_keep_plain_message_when_repeated():
    n = _notification(type=NotificationType.team_update.value, message="'Core' was updated")
    n.occurrence_count = 4
    assert n.display_message == "'Core' was updated"


def test_only_removals_are_resolvable():
    assert RESOLVABLE_TYPES == {NotificationType.team_removal.value}
