"""Test post CRUD operations."""

import uuid

import pytest
from fastapi.testclient import TestClient

from blog_api.models import Comment, Post, PostLike, User


def test_create_post_requires_auth(client: TestClient):
    response = client.post("/api/posts", json={"title": "Hi", "content": "World"})
    assert response.status_code == 401


def test_create_post_with_valid_data(client: TestClient, alice: User, auth_headers):
    response = client.post(
        "/api/posts",
        headers=auth_headers(alice),
        json={"title": "  Hi ", "content": " World  "},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Hi"
    assert data["content"] == "World"
    assert data["author"]["username"] == "alice"
    assert data["author"]["id"] == str(alice.id)
    assert data["likes"] == []
    assert data["likeCount"] == 0
    assert data["comments"] == []
    assert data["commentCount"] == 0
    assert data["isLiked"] is False
    assert data["createdAt"] == data["updatedAt"]


def test_create_then_get_returns_same_values(client: TestClient, alice_post: dict, alice: User):
    response = client.get(f"/api/posts/{alice_post['id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Hi"
    assert data["content"] == "World"
    assert data["author"]["id"] == str(alice.id)


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "Hi"},
        {"content": "World"},
        {"title": "   ", "content": "World"},
        {"title": "Hi", "content": ""},
        {"title": "t" * 201, "content": "World"},
        {"title": "Hi", "content": "c" * 10001},
    ],
)
def test_create_post_invalid_payload(client: TestClient, alice: User, auth_headers, payload: dict):
    response = client.post("/api/posts", headers=auth_headers(alice), json=payload)

    assert response.status_code == 400
    assert response.json()["code"] == "request.validation_error"


def test_list_posts_newest_first(client: TestClient, alice: User, bob: User, auth_headers):
    for i, user in enumerate([alice, bob, alice]):
        response = client.post(
            "/api/posts",
            headers=auth_headers(user),
            json={"title": f"Post {i}", "content": "body"},
        )
        assert response.status_code == 201

    response = client.get("/api/posts")

    assert response.status_code == 200
    titles = [post["title"] for post in response.json()]
    assert titles == ["Post 2", "Post 1", "Post 0"]


def test_list_posts_anonymous_has_no_like_flag(client: TestClient, alice_post: dict):
    response = client.get("/api/posts")

    assert response.status_code == 200
    assert all("isLiked" not in post for post in response.json())


def test_list_posts_with_invalid_token_is_treated_as_anonymous(client: TestClient, alice_post: dict):
    response = client.get("/api/posts", headers={"Authorization": "Bearer invalid_token"})

    assert response.status_code == 200
    assert all("isLiked" not in post for post in response.json())


def test_list_posts_annotates_like_state_for_viewer(
    client: TestClient, alice_post: dict, bob: User, alice: User, auth_headers
):
    client.post(f"/api/posts/{alice_post['id']}/like", headers=auth_headers(bob))

    bob_view = client.get("/api/posts", headers=auth_headers(bob)).json()
    alice_view = client.get(f"/api/posts/{alice_post['id']}", headers=auth_headers(alice)).json()

    assert bob_view[0]["isLiked"] is True
    assert bob_view[0]["likes"] == [str(bob.id)]
    assert alice_view["isLiked"] is False
    assert alice_view["likeCount"] == 1


def test_list_my_posts(client: TestClient, alice: User, bob: User, auth_headers):
    client.post("/api/posts", headers=auth_headers(alice), json={"title": "A1", "content": "x"})
    client.post("/api/posts", headers=auth_headers(bob), json={"title": "B1", "content": "x"})
    client.post("/api/posts", headers=auth_headers(alice), json={"title": "A2", "content": "x"})

    response = client.get("/api/posts/me/list", headers=auth_headers(alice))

    assert response.status_code == 200
    data = response.json()
    assert [post["title"] for post in data] == ["A2", "A1"]
    assert all(post["author"]["username"] == "alice" for post in data)
    assert all(post["isLiked"] is False for post in data)


def test_list_my_posts_requires_auth(client: TestClient):
    assert client.get("/api/posts/me/list").status_code == 401


@pytest.mark.parametrize("post_id", [str(uuid.uuid4()), "not-a-uuid"])
def test_get_nonexistent_post(client: TestClient, post_id: str):
    response = client.get(f"/api/posts/{post_id}")

    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"


def test_update_post_requires_auth(client: TestClient, alice_post: dict):
    response = client.put(f"/api/posts/{alice_post['id']}", json={"title": "Updated"})
    assert response.status_code == 401


def test_update_post_success(client: TestClient, alice: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(alice),
        json={"title": "  Updated Title "},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Updated Title"
    assert data["content"] == "World"
    assert data["updatedAt"] >= data["createdAt"]


def test_update_post_rejects_empty_string(client: TestClient, alice: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(alice),
        json={"content": "   "},
    )

    assert response.status_code == 400
    assert client.get(f"/api/posts/{alice_post['id']}").json()["content"] == "World"


def test_update_post_requires_ownership(client: TestClient, bob: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(bob),
        json={"title": "Hacked Title"},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized to edit this post"


def test_admin_cannot_update_others_post(client: TestClient, admin: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(admin),
        json={"title": "Moderated"},
    )
    assert response.status_code == 403


def test_forbidden_takes_precedence_over_invalid_payload(
    client: TestClient, bob: User, alice_post: dict, auth_headers
):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(bob),
        json={"title": ""},
    )
    assert response.status_code == 403


def test_update_nonexistent_post(client: TestClient, alice: User, auth_headers):
    response = client.put(
        f"/api/posts/{uuid.uuid4()}",
        headers=auth_headers(alice),
        json={"title": ""},
    )
    assert response.status_code == 404


def test_delete_post_requires_auth(client: TestClient, alice_post: dict):
    assert client.delete(f"/api/posts/{alice_post['id']}").status_code == 401


def test_delete_post_requires_ownership(client: TestClient, bob: User, alice_post: dict, auth_headers):
    response = client.delete(f"/api/posts/{alice_post['id']}", headers=auth_headers(bob))

    assert response.status_code == 403
    assert client.get(f"/api/posts/{alice_post['id']}").status_code == 200


def test_delete_nonexistent_post(client: TestClient, bob: User, auth_headers):
    response = client.delete(f"/api/posts/{uuid.uuid4()}", headers=auth_headers(bob))
    assert response.status_code == 404


def test_delete_post_cascades(client: TestClient, alice: User, bob: User, alice_post: dict, auth_headers, db):
    post_id = alice_post["id"]
    client.post(f"/api/posts/{post_id}/like", headers=auth_headers(bob))
    client.post(f"/api/posts/{post_id}/comments", headers=auth_headers(bob), json={"content": "nice"})

    response = client.delete(f"/api/posts/{post_id}", headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json() == {"message": "Post deleted successfully"}
    assert client.get(f"/api/posts/{post_id}").status_code == 404
    assert client.get("/api/posts").json() == []

    pid = uuid.UUID(post_id)
    assert db.query(Post).filter(Post.id == pid).count() == 0
    assert db.query(Comment).filter(Comment.post_id == pid).count() == 0
    assert db.query(PostLike).filter(PostLike.post_id == pid).count() == 0


def test_admin_can_delete_any_post(client: TestClient, admin: User, alice_post: dict, auth_headers):
    response = client.delete(f"/api/posts/{alice_post['id']}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert client.get(f"/api/posts/{alice_post['id']}").status_code == 404


@pytest.mark.parametrize("payload", [{"title": 123}, {"content": ["not", "text"]}])
def test_update_nonexistent_post_with_malformed_body(client: TestClient, alice: User, auth_headers, payload: dict):
    response = client.put(f"/api/posts/{uuid.uuid4()}", headers=auth_headers(alice), json=payload)

    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"


def test_update_others_post_with_malformed_body(client: TestClient, bob: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(bob),
        json={"title": 123},
    )
    assert response.status_code == 403


def test_update_own_post_with_malformed_body(client: TestClient, alice: User, alice_post: dict, auth_headers):
    response = client.put(
        f"/api/posts/{alice_post['id']}",
        headers=auth_headers(alice),
        json={"title": 123},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "request.validation_error"


def test_update_nonexistent_post_requires_auth_first(client: TestClient):
    response = client.put(f"/api/posts/{uuid.uuid4()}", json={"title": 123})
    assert response.status_code == 401
