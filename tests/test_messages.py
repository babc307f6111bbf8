from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

import config
from conftest import auth
from errors import Forbidden, InvalidInput, InvalidReference, InvalidState, NotFound
from models.Channel import Channel
from models.MessageHide import MessageHide
from schemas import DeleteMode, MessageWrite
from services import messages
from services.channels import find_channel_for_pair


def _send(db: Session, sender: str, receiver: str, text: str | None = "hi", **fields):
    return messages.send_message(db, sender, MessageWrite(receiver_id=receiver, message=text, **fields))


@pytest.fixture()
def trio(make_profile):
    return make_profile("alice"), make_profile("bob"), make_profile("carol")


def test_send_requires_text_or_image(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    with pytest.raises(InvalidInput):
        _send(db_session, alice, bob, None)
    with pytest.raises(InvalidInput):
        _send(db_session, alice, bob, "   ")

    msg = _send(db_session, alice, bob, "hi")
    assert msg.delivered is False
    assert msg.seen is False
    assert msg.deleted is False
    assert msg.edited is False
    assert msg.created_at is not None


def test_send_rejects_self_and_unknown_receiver(db_session: Session, trio) -> None:
    alice, _, _ = trio
    with pytest.raises(InvalidInput):
        _send(db_session, alice, alice)
    with pytest.raises(NotFound):
        _send(db_session, alice, "00000000-0000-0000-0000-000000000000")


def test_exclusive_image_needs_price(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    with pytest.raises(InvalidInput):
        _send(db_session, alice, bob, None, image_url="https://cdn.example/full.jpg", is_exclusive=True)
    with pytest.raises(InvalidInput):
        _send(db_session, alice, bob, None, image_url="https://cdn.example/full.jpg", is_exclusive=True, price=0)

    msg = _send(
        db_session, alice, bob, "unlock me",
        image_url="https://cdn.example/full.jpg",
        blurred_image_url="https://cdn.example/blur.jpg",
        is_exclusive=True,
        price=4.99,
    )
    assert msg.is_exclusive is True
    assert msg.price == 4.99


def test_reply_must_stay_in_channel(db_session: Session, trio) -> None:
    alice, bob, carol = trio
    other_channel = _send(db_session, alice, carol, "elsewhere")

    # No alice-bob channel yet: any reply target is invalid and nothing is written.
    with pytest.raises(InvalidReference):
        _send(db_session, bob, alice, "answer", replied_to=9999)
    with pytest.raises(InvalidReference):
        _send(db_session, bob, alice, "answer", replied_to=other_channel.id)
    assert find_channel_for_pair(db_session, alice, bob) is None
    assert db_session.query(Channel).count() == 1

    parent = _send(db_session, alice, bob, "question")

    with pytest.raises(InvalidReference):
        _send(db_session, bob, alice, "answer", replied_to=other_channel.id)
    with pytest.raises(InvalidReference):
        _send(db_session, bob, alice, "answer", replied_to=9999)

    reply = _send(db_session, bob, alice, "answer", replied_to=parent.id)
    assert reply.replied_to == parent.id
    assert reply.channel_id == parent.channel_id


def test_reply_to_tombstone_still_loads(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    parent = _send(db_session, alice, bob, "secret")
    reply = _send(db_session, bob, alice, "what?", replied_to=parent.id)

    messages.delete_message(db_session, parent.id, alice, DeleteMode.everyone)

    tombstone = messages.require_message(db_session, parent.id)
    assert tombstone.deleted is True
    assert tombstone.deleted_at is not None
    assert tombstone.message is None
    reloaded = messages.require_message(db_session, reply.id)
    assert reloaded.replied_message.id == parent.id
    assert reloaded.replied_message.deleted is True


def test_edit_rules(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    msg = _send(db_session, alice, bob, "hello")

    with pytest.raises(Forbidden):
        messages.edit_message(db_session, msg.id, bob, "hacked")
    with pytest.raises(InvalidInput):
        messages.edit_message(db_session, msg.id, alice, "  ")

    messages.delete_message(db_session, msg.id, alice, DeleteMode.everyone)
    with pytest.raises(InvalidState):
        messages.edit_message(db_session, msg.id, alice, "hello!")


def test_delete_for_everyone_requires_sender(db_session: Session, trio) -> None:
    alice, bob, carol = trio
    msg = _send(db_session, alice, bob)

    with pytest.raises(Forbidden):
        messages.delete_message(db_session, msg.id, bob, DeleteMode.everyone)
    with pytest.raises(Forbidden):
        messages.delete_message(db_session, msg.id, carol, DeleteMode.me)
    with pytest.raises(NotFound):
        messages.delete_message(db_session, 9999, alice, DeleteMode.me)


def test_delete_for_me_does_not_touch_global_flag(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    msg = _send(db_session, alice, bob, "keep for alice")

    messages.delete_message(db_session, msg.id, bob, DeleteMode.me)
    messages.delete_message(db_session, msg.id, bob, DeleteMode.me)
    messages.delete_message(db_session, msg.id, alice, DeleteMode.me)

    assert msg.deleted is False
    assert msg.message == "keep for alice"
    assert messages.is_hidden_for(db_session, msg.id, bob)
    assert messages.is_hidden_for(db_session, msg.id, alice)


def test_bulk_delete_reports_skipped(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    mine = _send(db_session, alice, bob, "mine")
    theirs = _send(db_session, bob, alice, "theirs")

    result = messages.delete_messages(db_session, alice, [mine.id, theirs.id, 9999, mine.id], DeleteMode.everyone)

    assert result.deleted == [mine.id]
    assert {(s.id, s.reason) for s in result.skipped} == {(theirs.id, "forbidden"), (9999, "not_found")}
    assert messages.require_message(db_session, mine.id).deleted is True
    assert messages.require_message(db_session, theirs.id).deleted is False


def test_bulk_hide_survives_a_concurrent_hide(db_session: Session, session_factory, trio, monkeypatch) -> None:
    alice, bob, _ = trio
    first = _send(db_session, alice, bob, "first")
    second = _send(db_session, alice, bob, "second")

    real_check = messages.is_hidden_for
    raced = []

    def check_then_race(db, message_id, user_id):
        hidden = real_check(db, message_id, user_id)
        if message_id == second.id and not raced:
            # Another request hides the same message right after our check.
            other = session_factory()
            other.add(MessageHide(message_id=second.id, user_id=bob))
            other.commit()
            other.close()
            raced.append(message_id)
        return hidden

    monkeypatch.setattr(messages, "is_hidden_for", check_then_race)

    result = messages.delete_messages(db_session, bob, [first.id, second.id], DeleteMode.me)

    assert raced == [second.id]
    assert result.deleted == [first.id, second.id]
    assert real_check(db_session, first.id, bob)
    assert real_check(db_session, second.id, bob)
    assert db_session.query(MessageHide).count() == 2


def test_forward_copies_content_not_state(db_session: Session, trio) -> None:
    alice, bob, carol = trio
    original = _send(db_session, bob, alice, "pass it on")
    messages.message_seen(db_session, original.id, alice)
    messages.edit_message(db_session, original.id, bob, "pass it on!")

    copy = messages.forward_message(db_session, original.id, carol, alice)

    assert copy.id != original.id
    assert copy.channel_id != original.channel_id
    assert copy.sender_id == alice
    assert copy.receiver_id == carol
    assert copy.message == "pass it on!"
    assert copy.edited is False
    assert copy.seen is False
    assert copy.delivered is False
    assert copy.replied_to is None
    assert copy.created_at >= original.created_at


def test_forward_rejects_deleted_and_outsiders(db_session: Session, trio) -> None:
    alice, bob, carol = trio
    msg = _send(db_session, alice, bob, "private")

    with pytest.raises(Forbidden):
        messages.forward_message(db_session, msg.id, alice, carol)

    messages.delete_message(db_session, msg.id, alice, DeleteMode.everyone)
    with pytest.raises(NotFound):
        messages.forward_message(db_session, msg.id, carol, bob)


def test_receipts_are_monotonic(db_session: Session, trio) -> None:
    alice, bob, _ = trio
    msg = _send(db_session, alice, bob)

    with pytest.raises(Forbidden):
        messages.message_seen(db_session, msg.id, alice)

    assert messages.message_seen(db_session, msg.id, bob).seen is True
    again = messages.message_seen(db_session, msg.id, bob)
    assert again.seen is True
    assert again.delivered is True
    assert messages.message_delivered(db_session, msg.id, bob).delivered is True


def test_seen_without_delivered_when_disabled(db_session: Session, trio, monkeypatch) -> None:
    monkeypatch.setattr(config, "SEEN_IMPLIES_DELIVERED", False)
    alice, bob, _ = trio
    msg = _send(db_session, alice, bob)

    seen = messages.message_seen(db_session, msg.id, bob)

    assert seen.seen is True
    assert seen.delivered is False


def test_parse_delete_mode() -> None:
    assert messages.parse_delete_mode("true") is DeleteMode.everyone
    assert messages.parse_delete_mode("Everyone") is DeleteMode.everyone
    assert messages.parse_delete_mode("false") is DeleteMode.me
    with pytest.raises(InvalidInput):
        messages.parse_delete_mode("sometimes")


def test_conversation_scenario(client, register) -> None:
    alice = register("alice")
    bob = register("bob")
    carol = register("carol")

    res = client.post("/messages", json={"receiver_id": bob}, headers=auth(alice))
    assert res.status_code == 400

    res = client.post("/messages", json={"receiver_id": bob, "message": "hello"}, headers=auth(alice))
    assert res.status_code == 201
    msg = res.json()
    assert msg["delivered"] is False
    assert msg["created_at"]
    message_id = msg["id"]

    assert client.put(f"/messages/delivered/{message_id}", headers=auth(bob)).json()["delivered"] is True
    seen = client.put(f"/messages/seen/{message_id}", headers=auth(bob)).json()
    assert seen["seen"] is True and seen["delivered"] is True

    res = client.patch(f"/messages/{message_id}/edit", json={"message": "hello!"}, headers=auth(alice))
    assert res.json()["edited"] is True
    assert res.json()["edited_at"]
    assert res.json()["message"] == "hello!"

    res = client.post(f"/messages/{message_id}/{carol}/forward", headers=auth(bob))
    assert res.status_code == 201
    assert res.json()["message"] == "hello!"
    assert res.json()["edited"] is False

    res = client.delete(f"/messages/{message_id}/everyone/delete", headers=auth(alice))
    assert res.json()["deleted"] is True
    assert res.json()["message"] is None

    res = client.delete(f"/messages/{message_id}/maybe/delete", headers=auth(alice))
    assert res.status_code == 400

    res = client.patch(f"/messages/{message_id}/edit", json={"message": "back"}, headers=auth(alice))
    assert res.status_code == 409


def test_bulk_delete_api(client, register) -> None:
    alice = register("alice")
    bob = register("bob")
    ids = [
        client.post("/messages", json={"receiver_id": bob, "message": f"m{i}"}, headers=auth(alice)).json()["id"]
        for i in range(2)
    ]

    res = client.request(
        "DELETE",
        "/channels/messages/delete",
        json={"message_ids": ids + [424242], "mode": "me"},
        headers=auth(bob),
    )

    assert res.status_code == 200
    assert res.json()["deleted"] == ids
    assert res.json()["skipped"] == [{"id": 424242, "reason": "not_found"}]
    channel_id = client.post(f"/channels/create/{alice}", headers=auth(bob)).json()["id"]
    assert client.get(f"/channels/{channel_id}/messages", headers=auth(bob)).json() == []
    assert len(client.get(f"/channels/{channel_id}/messages", headers=auth(alice)).json()) == 2
