"""
Tests for posts, likes, comments and the feed
=============================================
Covers:
- Create post: stored with the caller as author, blank content rejected
- Delete post: own post (204), someone else's or unknown (404)
- Like: count and state returned, unknown post (404), unlike
- Comments: oldest first with author names, create on unknown post (404),
  blank comment rejected, delete own comment, delete unknown (404)
- Feed: pagination parameters and like state

Run: pytest tests/test_posts.py -v
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from conftest import AUTH_HEADER, OTHER_ID, USER_ID

_NOW = datetime.now(timezone.utc).isoformat()


def _echo_insert(query):
    return {"data": [{"id": str(uuid.uuid4()), "created_at": _NOW, **query.payload}]}


class TestPosts:

    def test_create_post(self, client, fake_db):
        fake_db.on("posts", "insert", handler=_echo_insert)

        response = client.post("/api/v1/posts", json={"content": "  First 10k!  "}, headers=AUTH_HEADER)

        assert response.status_code == 201
        body = response.json()
        assert body["content"] == "First 10k!"
        assert body["user_id"] == USER_ID

    def test_blank_post_rejected(self, client, fake_db):
        response = client.post("/api/v1/posts", json={"content": "   "}, headers=AUTH_HEADER)

        assert response.status_code == 422
        assert fake_db.queries("posts", "insert") == []

    def test_delete_own_post(self, client, fake_db):
        fake_db.on("posts", "delete", data=[{"id": "p1"}])

        response = client.delete("/api/v1/posts/p1", headers=AUTH_HEADER)

        assert response.status_code == 204
        assert ("user_id", USER_ID) in fake_db.queries("posts", "delete")[0].filters("eq")

    def test_delete_someone_elses_post(self, client, fake_db):
        fake_db.on("posts", "delete", data=[])

        response = client.delete("/api/v1/posts/p1", headers=AUTH_HEADER)

        assert response.status_code == 404


class TestLikes:

    def test_like_returns_fresh_count(self, client, fake_db):
        fake_db.on("posts", "select", data=[{"id": "p1"}])
        fake_db.on("post_likes", "select", data=[
            {"post_id": "p1", "user_id": USER_ID},
            {"post_id": "p1", "user_id": OTHER_ID},
        ])

        response = client.post("/api/v1/posts/p1/like", headers=AUTH_HEADER)

        assert response.status_code == 200
        assert response.json() == {"post_id": "p1", "liked": True, "like_count": 2}
        assert fake_db.queries("post_likes", "insert")[0].payload == {"post_id": "p1", "user_id": USER_ID}

    def test_like_unknown_post(self, client, fake_db):
        fake_db.on("posts", "select", data=[])

        response = client.post("/api/v1/posts/nope/like", headers=AUTH_HEADER)

        assert response.status_code == 404
        assert fake_db.queries("post_likes", "insert") == []

    def test_unlike(self, client, fake_db):
        fake_db.on("post_likes", "select", data=[{"post_id": "p1", "user_id": OTHER_ID}])

        response = client.delete("/api/v1/posts/p1/like", headers=AUTH_HEADER)

        assert response.json() == {"post_id": "p1", "liked": False, "like_count": 1}


class TestComments:

    def test_list_comments_with_authors(self, client, fake_db):
        fake_db.on("comments", "select", data=[
            {"id": "c1", "post_id": "p1", "user_id": OTHER_ID, "content": "Nice!", "created_at": _NOW},
            {"id": "c2", "post_id": "p1", "user_id": USER_ID, "content": "Thanks", "created_at": _NOW},
        ])
        fake_db.on("profiles", "select", data=[
            {"id": OTHER_ID, "username": "ola", "avatar_url": "https://cdn.example/ola.png"},
        ])

        response = client.get("/api/v1/posts/p1/comments", headers=AUTH_HEADER)

        assert response.status_code == 200
        body = response.json()
        assert [c["id"] for c in body] == ["c1", "c2"]
        assert body[0]["username"] == "ola"
        assert body[1]["username"] is None
        assert fake_db.queries("comments", "select")[0].calls[-1] == ("order", ("created_at",), {"desc": False})

    def test_create_comment(self, client, fake_db):
        fake_db.on("posts", "select", data=[{"id": "p1"}])
        fake_db.on("comments", "insert", handler=_echo_insert)

        response = client.post("/api/v1/posts/p1/comments", json={"content": "Well done"}, headers=AUTH_HEADER)

        assert response.status_code == 201
        assert response.json()["content"] == "Well done"
        assert fake_db.queries("comments", "insert")[0].payload == {
            "post_id": "p1", "user_id": USER_ID, "content": "Well done",
        }

    def test_comment_on_unknown_post(self, client, fake_db):
        fake_db.on("posts", "select", data=[])

        response = client.post("/api/v1/posts/nope/comments", json={"content": "Hi"}, headers=AUTH_HEADER)

        assert response.status_code == 404

    def test_blank_comment_rejected(self, client):
        response = client.post("/api/v1/posts/p1/comments", json={"content": ""}, headers=AUTH_HEADER)

        assert response.status_code == 422

    def test_delete_own_comment(self, client, fake_db):
        fake_db.on("comments", "delete", data=[{"id": "c1"}])

        response = client.delete("/api/v1/comments/c1", headers=AUTH_HEADER)

        assert response.status_code == 204
        assert ("user_id", USER_ID) in fake_db.queries("comments", "delete")[0].filters("eq")

    def test_delete_unknown_comment(self, client, fake_db):
        fake_db.on("comments", "delete", data=[])

        response = client.delete("/api/v1/comments/c9", headers=AUTH_HEADER)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"


class TestFeed:

    def test_feed_page(self, client, fake_db):
        fake_db.on("follows", "select", data=[{"following_id": OTHER_ID}])
        fake_db.on("posts", "select", data=[
            {"id": "p1", "user_id": OTHER_ID, "content": "Hei", "image_url": None, "created_at": _NOW},
        ])
        fake_db.on("post_likes", "select", data=[{"post_id": "p1", "user_id": USER_ID}])
        fake_db.on("profiles", "select", data=[{"id": OTHER_ID, "username": "ola"}])

        response = client.get("/api/v1/feed?page=2", headers=AUTH_HEADER)

        assert response.status_code == 200
        body = response.json()
        assert body["page"] == 2
        assert body["items"][0]["liked_by_me"] is True
        assert body["items"][0]["author"]["username"] == "ola"
        assert fake_db.queries("posts", "select")[0].filters("range") == [(20, 30)]

    def test_negative_page_rejected(self, client):
        response = client.get("/api/v1/feed?page=-1", headers=AUTH_HEADER)

        assert response.status_code == 422
