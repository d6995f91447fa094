import pytest

from roomchat.commands import ProtocolError
from roomchat.events import (
    ChatHistoryReplyEvent,
    HistoryMessage,
    LoginSuccessfulReplyEvent,
    RoomDetail,
    RoomParticipationBroadcastEvent,
    RoomParticipationStatus,
    UserJoinedRoomReplyEvent,
    UserMessageBroadcastEvent,
    decode_event,
    encode_event,
)


def assert_event_serialization(event, expected):
    serialized = encode_event(event)
    assert serialized == expected
    assert decode_event(serialized) == event


def test_login_successful_event():
    event = LoginSuccessfulReplyEvent(
        session_id="session-id-1",
        user_id="user-id-1",
        rooms=[RoomDetail(name="room-1", description="some description")],
    )
    assert_event_serialization(
        event,
        '{"_et":"login_successful","s":"session-id-1","u":"user-id-1",'
        '"rs":[{"n":"room-1","d":"some description"}]}',
    )


def test_room_participation_join_event():
    event = RoomParticipationBroadcastEvent(
        room="test", user_id="test", status=RoomParticipationStatus.JOINED
    )
    assert_event_serialization(
        event, '{"_et":"room_participation","r":"test","u":"test","s":"joined"}'
    )


def test_room_participation_leave_event():
    event = RoomParticipationBroadcastEvent(
        room="test", user_id="test", status=RoomParticipationStatus.LEFT
    )
    assert_event_serialization(
        event, '{"_et":"room_participation","r":"test","u":"test","s":"left"}'
    )


def test_user_joined_room_event():
    event = UserJoinedRoomReplyEvent(room="test", users=["test"])
    assert_event_serialization(event, '{"_et":"user_joined_room","r":"test","us":["test"]}')


def test_user_message_event():
    event = UserMessageBroadcastEvent(room="test", user_id="test", content="test")
    assert_event_serialization(
        event, '{"_et":"user_message","r":"test","u":"test","c":"test"}'
    )


def test_chat_history_event():
    event = ChatHistoryReplyEvent(
        room="test", messages=[HistoryMessage(user_id="user1", content="test message")]
    )
    assert_event_serialization(
        event, '{"_et":"chat_history","r":"test","m":[{"u":"user1","c":"test message"}]}'
    )


def test_empty_room_list_round_trips():
    event = LoginSuccessfulReplyEvent(session_id="s", user_id="u", rooms=[])
    assert_event_serialization(event, '{"_et":"login_successful","s":"s","u":"u","rs":[]}')


def test_decoded_status_is_enum_member():
    event = decode_event('{"_et":"room_participation","r":"a","u":"b","s":"left"}')
    assert event.status is RoomParticipationStatus.LEFT


@pytest.mark.parametrize(
    "text",
    [
        "{",
        '"login_successful"',
        '{"_et":"nope"}',
        '{"_et":"room_participation","r":"a","u":"b","s":"gone"}',
        '{"_et":"login_successful","s":"s","u":"u","rs":"rooms"}',
        '{"_et":"login_successful","s":"s","u":"u","rs":[{"n":"a"}]}',
        '{"_et":"user_joined_room","r":"a","us":[1]}',
        '{"_et":"chat_history","r":"a"}',
        '{"r":"a"}',
    ],
)
def test_invalid_events_raise(text):
    with pytest.raises(ProtocolError):
        decode_event(text)


def test_encode_rejects_non_event():
    with pytest.raises(TypeError):
        encode_event({"_et": "user_message"})