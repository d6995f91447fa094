from roomchat.server.registry import UserRegistry


def test_first_session_makes_new_user():
    registry = UserRegistry()
    assert registry.insert("alice", "s1")
    assert registry.unique_user_ids() == ["alice"]


def test_second_session_of_same_user_is_not_new():
    registry = UserRegistry()
    registry.insert("alice", "s1")
    assert not registry.insert("alice", "s2")
    assert registry.unique_user_ids() == ["alice"]


def test_reinserting_only_session_still_reports_new():
    registry = UserRegistry()
    registry.insert("alice", "s1")
    assert registry.insert("alice", "s1")
    assert len(registry) == 1


def test_remove_one_of_two_sessions_keeps_user():
    registry = UserRegistry()
    registry.insert("alice", "s1")
    registry.insert("alice", "s2")
    assert not registry.remove("alice", "s1")
    assert "alice" in registry


def test_remove_last_session_removes_user():
    registry = UserRegistry()
    registry.insert("alice", "s1")
    registry.insert("bob", "s2")
    assert registry.remove("alice", "s1")
    assert "alice" not in registry
    assert registry.unique_user_ids() == ["bob"]


def test_remove_unknown_user_does_nothing():
    registry = UserRegistry()
    registry.insert("alice", "s1")
    assert not registry.remove("bob", "s1")
    assert registry.unique_user_ids() == ["alice"]


def test_unique_user_ids_has_no_duplicates():
    registry = UserRegistry()
    for user, session in [("a", "1"), ("a", "2"), ("b", "3"), ("b", "4")]:
        registry.insert(user, session)
    ids = registry.unique_user_ids()
    assert sorted(ids) == ["a", "b"]
    assert len(ids) == len(set(ids))