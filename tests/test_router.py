import json

from parley.identity import ClientIdentity, Role
from parley.messages import OutboundMessage, Registration
from parley.router import CloseRequested, Forward, Ignore, route

S1 = ClientIdentity(Role.STUDENT, "s1")


def frame(**data) -> str:
    return json.dumps(data)


def test_close_command():
    assert route("close", S1) == CloseRequested()


def test_forward_to_teacher():
    outcome = route(frame(**{"from": "s1", "type": 1, "id": "t1", "msg": "hello"}), S1)

    assert outcome == Forward(
        to=ClientIdentity(Role.TEACHER, "t1"),
        message=OutboundMessage(sender=S1, text="hello"),
    )


def test_forward_to_student_with_numeric_id():
    outcome = route(frame(**{"from": "s1", "type": 0, "id": 42, "msg": "hi"}), S1)

    assert isinstance(outcome, Forward)
    assert outcome.to == ClientIdentity(Role.STUDENT, "42")


def test_sender_is_the_session_identity_not_the_claimed_one():
    outcome = route(frame(**{"from": "someone-else", "type": 1, "id": "t1", "msg": "x"}), S1)

    assert isinstance(outcome, Forward)
    assert outcome.message.sender == S1


def test_empty_message_is_ignored():
    assert route(frame(**{"from": "s1", "type": 1, "id": "t1", "msg": ""}), S1) == Ignore("empty")


def test_missing_message_is_ignored():
    assert route(frame(**{"from": "s1", "type": 1, "id": "t1"}), S1) == Ignore("empty")


def test_object_without_from_is_a_registration():
    outcome = route(frame(type=1, id="t1"), S1)

    assert outcome == Registration(identity=ClientIdentity(Role.TEACHER, "t1"))


def test_message_without_from_is_malformed_not_a_registration():
    outcome = route(frame(type=1, id="t1", msg="who sent this?"), S1)

    assert outcome == Ignore("malformed")


def test_invalid_json_is_ignored_as_malformed():
    assert route("{not json", S1) == Ignore("malformed")


def test_non_object_json_is_ignored_as_malformed():
    assert route("[1, 2, 3]", S1) == Ignore("malformed")


def test_unknown_role_is_ignored_as_malformed():
    outcome = route(frame(**{"from": "s1", "type": 5, "id": "t1", "msg": "x"}), S1)

    assert outcome == Ignore("malformed")


def test_non_string_message_is_ignored_as_malformed():
    outcome = route(frame(**{"from": "s1", "type": 1, "id": "t1", "msg": {"a": 1}}), S1)

    assert outcome == Ignore("malformed")
