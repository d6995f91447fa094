import pytest

from roomchat.events import (
    ChatHistoryReplyEvent,
    HistoryMessage,
    LoginSuccessfulReplyEvent,
    RoomDetail,
    RoomParticipationBroadcastEvent,
    RoomParticipationStatus,
    UserJoinedRoomReplyEvent,
    UserMessageBroadcastEvent,
)
from roomchat.tui.state import (
    MAX_MESSAGES_TO_STORE_PER_ROOM,
    ChatMessage,
    ConnectionState,
    Notification,
    State,
)


def _logged_in(user_id="me"):
    state = State()
    state.handle_server_event(
        LoginSuccessfulReplyEvent(
            session_id="session-id-1",
            user_id=user_id,
            rooms=[
                RoomDetail(name="general", description="General talk"),
                RoomDetail(name="random", description="Anything goes"),
            ],
        )
    )
    return state


def test_default_state():
    state = State()
    assert str(state.server_connection_status) == "Uninitialized"
    assert state.active_room is None
    assert state.room_data_map == {}
    assert state.timer == 0


def test_login_sets_user_and_rooms():
    state = _logged_in()
    assert state.user_id == "me"
    assert sorted(state.room_data_map) == ["general", "random"]
    general = state.room_data_map["general"]
    assert general.description == "General talk"
    assert not general.has_joined
    assert list(general.messages) == []


def test_own_join_marks_room_joined_and_notifies():
    state = _logged_in()
    state.handle_server_event(
        RoomParticipationBroadcastEvent(
            room="general", user_id="me", status=RoomParticipationStatus.JOINED
        )
    )
    general = state.room_data_map["general"]
    assert general.has_joined
    assert general.users == {"me"}
    assert list(general.messages) == [Notification("me has joined the room")]


def test_other_user_leaving_is_removed():
    state = _logged_in()
    state.handle_server_event(UserJoinedRoomReplyEvent(room="general", users=["me", "bob"]))
    state.handle_server_event(
        RoomParticipationBroadcastEvent(
            room="general", user_id="bob", status=RoomParticipationStatus.LEFT
        )
    )
    general = state.room_data_map["general"]
    assert general.users == {"me"}
    assert list(general.messages) == [Notification("bob has left the room")]


def test_own_leave_clears_joined_flag():
    state = _logged_in()
    for status in (RoomParticipationStatus.JOINED, RoomParticipationStatus.LEFT):
        state.handle_server_event(
            RoomParticipationBroadcastEvent(room="general", user_id="me", status=status)
        )
    assert not state.room_data_map["general"].has_joined


def test_participation_in_unknown_room_is_ignored():
    state = _logged_in()
    state.handle_server_event(
        RoomParticipationBroadcastEvent(
            room="elsewhere", user_id="bob", status=RoomParticipationStatus.JOINED
        )
    )
    assert "elsewhere" not in state.room_data_map


def test_user_joined_room_replaces_users():
    state = _logged_in()
    state.room_data_map["general"].users.add("ghost")
    state.handle_server_event(UserJoinedRoomReplyEvent(room="general", users=["me", "bob"]))
    assert state.room_data_map["general"].users == {"me", "bob"}


def test_user_message_in_unknown_room_raises():
    state = _logged_in()
    with pytest.raises(KeyError):
        state.handle_server_event(
            UserMessageBroadcastEvent(room="elsewhere", user_id="bob", content="hi")
        )


def test_message_to_inactive_room_marks_unread():
    state = _logged_in()
    state.try_set_active_room("random")
    state.handle_server_event(UserMessageBroadcastEvent(room="general", user_id="bob", content="hi"))
    general = state.room_data_map["general"]
    assert general.has_unread
    assert list(general.messages) == [ChatMessage(user_id="bob", content="hi")]


def test_message_to_active_room_is_read():
    state = _logged_in()
    state.try_set_active_room("general")
    state.handle_server_event(UserMessageBroadcastEvent(room="general", user_id="bob", content="hi"))
    assert not state.room_data_map["general"].has_unread


def test_message_without_active_room_is_not_marked_unread():
    state = _logged_in()
    state.handle_server_event(UserMessageBroadcastEvent(room="general", user_id="bob", content="hi"))
    assert not state.room_data_map["general"].has_unread


def test_history_replaces_messages():
    state = _logged_in()
    state.handle_server_event(UserMessageBroadcastEvent(room="general", user_id="bob", content="old"))
    state.handle_server_event(
        ChatHistoryReplyEvent(
            room="general",
            messages=[
                HistoryMessage(user_id="alice", content="one"),
                HistoryMessage(user_id="bob", content="two"),
            ],
        )
    )
    assert list(state.room_data_map["general"].messages) == [
        ChatMessage(user_id="alice", content="one"),
        ChatMessage(user_id="bob", content="two"),
    ]


def test_message_box_keeps_only_latest_messages():
    state = _logged_in()
    total = MAX_MESSAGES_TO_STORE_PER_ROOM + 5
    for number in range(total):
        state.handle_server_event(
            UserMessageBroadcastEvent(room="general", user_id="bob", content=str(number))
        )
    messages = list(state.room_data_map["general"].messages)
    assert len(messages) == MAX_MESSAGES_TO_STORE_PER_ROOM
    assert messages[0].content == str(total - MAX_MESSAGES_TO_STORE_PER_ROOM)
    assert messages[-1].content == str(total - 1)


def test_connection_lifecycle():
    state = State()
    state.mark_connection_request_start()
    assert str(state.server_connection_status) == "Connecting"
    state.process_connection_request_result("localhost:8085")
    assert state.server_connection_status.state is ConnectionState.CONNECTED
    assert str(state.server_connection_status) == "Connected to localhost:8085"
    state.process_connection_request_result(ConnectionRefusedError("refused"))
    assert state.server_connection_status.state is ConnectionState.ERRORED
    assert str(state.server_connection_status) == "Errored: refused"


def test_try_set_active_room_clears_unread():
    state = _logged_in()
    state.room_data_map["general"].has_unread = True
    room_data = state.try_set_active_room("general")
    assert room_data is state.room_data_map["general"]
    assert not room_data.has_unread
    assert state.active_room == "general"


def test_try_set_unknown_room_leaves_active_room():
    state = _logged_in()
    state.try_set_active_room("general")
    assert state.try_set_active_room("elsewhere") is None
    assert state.active_room == "general"


def test_tick_timer_counts_up():
    state = State()
    state.tick_timer()
    state.tick_timer()
    assert state.timer == 2