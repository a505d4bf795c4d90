from datetime import datetime, timedelta


def _send(client, sender, receiver_id, body="Hello", **extra):
    return client.post(
        "/api/messages",
        json={"receiver_id": receiver_id, "body": body, **extra},
        headers=sender["headers"],
    )


def test_send_message(client, farmer, buyer, make_listing):
    listing = make_listing(farmer)

    resp = _send(client, buyer, farmer["id"], "  Are these organic? ", listing_id=listing["id"])

    assert resp.status_code == 201
    message = resp.json()
    assert message["body"] == "Are these organic?"
    assert message["sender_id"] == buyer["id"]
    assert message["listing_id"] == listing["id"]
    assert message["is_read"] is False


def test_send_validation(client, farmer, buyer):
    assert _send(client, buyer, buyer["id"]).status_code == 400
    assert _send(client, buyer, "nobody").status_code == 404
    assert _send(client, buyer, farmer["id"], listing_id="gone").status_code == 404
    assert _send(client, buyer, farmer["id"], "   ").status_code == 422
    assert _send(client, buyer, farmer["id"], "x" * 2001).status_code == 422


def test_messaging_requires_session(client, farmer):
    resp = client.post("/api/messages", json={"receiver_id": farmer["id"], "body": "hi"})
    assert resp.status_code == 401


def test_unread_count_and_reading_thread(client, farmer, buyer):
    _send(client, buyer, farmer["id"], "first")
    _send(client, buyer, farmer["id"], "second")

    unread = client.get("/api/messages/unread-count", headers=farmer["headers"]).json()
    assert unread == {"unread": 2}

    thread = client.get(f"/api/messages/thread/{buyer['id']}", headers=farmer["headers"]).json()
    assert [m["body"] for m in thread["messages"]] == ["first", "second"]
    assert all(m["is_read"] for m in thread["messages"])
    assert thread["latest"] == thread["messages"][-1]["created_at"]

    unread = client.get("/api/messages/unread-count", headers=farmer["headers"]).json()
    assert unread == {"unread": 0}


def test_sender_reading_does_not_mark_read(client, farmer, buyer):
    _send(client, buyer, farmer["id"], "ping")

    client.get(f"/api/messages/thread/{farmer['id']}", headers=buyer["headers"])

    unread = client.get("/api/messages/unread-count", headers=farmer["headers"]).json()
    assert unread == {"unread": 1}


def test_conversations(client, register):
    farmer = register("farmer", name="Fiona")
    first = register("buyer", name="Ann")
    second = register("buyer", name="Ben")

    _send(client, first, farmer["id"], "from ann")
    _send(client, second, farmer["id"], "from ben")
    _send(client, farmer, second["id"], "reply to ben")

    items = client.get("/api/messages/conversations", headers=farmer["headers"]).json()

    assert [c["user"]["full_name"] for c in items] == ["Ben", "Ann"]
    assert items[0]["last_message"]["body"] == "reply to ben"
    assert items[0]["unread"] == 1
    assert items[1]["unread"] == 1


def test_thread_polling_with_since(client, store, farmer, buyer):
    earlier = datetime.utcnow() - timedelta(minutes=5)
    _send(client, buyer, farmer["id"], "old")
    store.messages[0]["created_at"] = earlier

    _send(client, buyer, farmer["id"], "new")

    resp = client.get(
        f"/api/messages/thread/{buyer['id']}",
        params={"since": earlier.isoformat()},
        headers=farmer["headers"],
    )

    assert resp.status_code == 200
    assert [m["body"] for m in resp.json()["messages"]] == ["new"]


def test_thread_polling_with_nothing_new(client, farmer, buyer):
    since = (datetime.utcnow() + timedelta(minutes=1)).isoformat()

    body = client.get(
        f"/api/messages/thread/{buyer['id']}",
        params={"since": since},
        headers=farmer["headers"],
    ).json()

    assert body == {"latest": since, "messages": []}


def test_thread_rejects_bad_since(client, farmer, buyer):
    resp = client.get(
        f"/api/messages/thread/{buyer['id']}",
        params={"since": "yesterday"},
        headers=farmer["headers"],
    )
    assert resp.status_code == 400


def test_thread_with_unknown_user(client, farmer):
    assert client.get("/api/messages/thread/nobody", headers=farmer["headers"]).status_code == 404
