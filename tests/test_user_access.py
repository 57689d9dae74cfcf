from tests.conftest import *


def _access_url(user_id, course_id):
    return f"/users/{user_id}/courses/{course_id}/access"


class TestUserAccessHandler:
    def test_no_access(self, client):
        """User with neither purchase nor subscription"""
        user_id = create_user()
        course_id = create_course()

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert response.status_code == 200

        data = response.json
        assert data["user_id"] == user_id
        assert data["course_id"] == course_id
        assert not data["has_access"]
        assert data["access_type"] is None

    def test_access_through_purchase(self, client):
        user_id = create_user()
        course_id = create_course()
        create_purchase(user_id, course_id)

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert response.json["has_access"]
        assert response.json["access_type"] == "purchase"

    def test_purchase_only_opens_its_own_course(self, client):
        user_id = create_user()
        bought = create_course(title="Bought")
        other = create_course(title="Other")
        create_purchase(user_id, bought)

        response = client.get(_access_url(user_id, other), headers=auth_headers("user_ext_1"))
        assert not response.json["has_access"]

    def test_duplicate_purchases_are_tolerated(self, client):
        user_id = create_user()
        course_id = create_course()
        create_purchase(user_id, course_id, stripe_purchase_id="cs_a")
        create_purchase(user_id, course_id, stripe_purchase_id="cs_b")

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert response.json["has_access"]
        assert response.json["access_type"] == "purchase"

    def test_active_subscription_opens_every_course(self, client):
        user_id = create_user()
        first = create_course(title="First")
        second = create_course(title="Second")
        create_subscription(user_id, status="active")

        for course_id in (first, second):
            response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
            assert response.json["has_access"]
            assert response.json["access_type"] == "subscription"

    def test_subscription_wins_over_purchase(self, client):
        user_id = create_user()
        course_id = create_course()
        create_purchase(user_id, course_id)
        create_subscription(user_id, status="active")

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert response.json["access_type"] == "subscription"

    def test_inactive_subscription_falls_through_to_purchase(self, client):
        user_id = create_user()
        course_id = create_course()
        create_purchase(user_id, course_id)
        create_subscription(user_id, status="past_due")

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert response.json["has_access"]
        assert response.json["access_type"] == "purchase"

    def test_canceled_subscription_without_purchase(self, client):
        user_id = create_user()
        course_id = create_course()
        create_subscription(user_id, status="canceled")

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_1"))
        assert not response.json["has_access"]

    def test_requires_authentication(self, client):
        user_id = create_user()
        course_id = create_course()

        response = client.get(_access_url(user_id, course_id))
        assert response.status_code == 401

    def test_rejects_invalid_token(self, client):
        user_id = create_user()
        course_id = create_course()

        response = client.get(_access_url(user_id, course_id), headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_cannot_read_another_users_access(self, client):
        user_id = create_user()
        create_user(clerk_id="user_ext_2", email="grace@example.com")
        course_id = create_course()

        response = client.get(_access_url(user_id, course_id), headers=auth_headers("user_ext_2"))
        assert response.status_code == 403

    def test_user_not_found(self, client):
        """Test getting access for non-existent user"""
        course_id = create_course()

        response = client.get(_access_url(999, course_id), headers=auth_headers("user_ext_1"))
        assert response.status_code == 404
        assert "User not found" in response.json["error"]

    def test_invalid_user_id(self, client):
        """Test getting access with invalid user ID format"""
        response = client.get("/users/invalid_id/courses/1/access", headers=auth_headers("user_ext_1"))
        assert response.status_code == 404  # Flask converts invalid int to 404


class TestUserSubscription:
    def test_current_subscription(self, client):
        user_id = create_user()
        create_subscription(user_id, status="active", stripe_subscription_id="sub_42")

        response = client.get(f"/users/{user_id}/subscription", headers=auth_headers("user_ext_1"))
        assert response.status_code == 200
        assert response.json["stripe_subscription_id"] == "sub_42"
        assert response.json["plan_type"] == "month"

    def test_no_subscription(self, client):
        user_id = create_user()

        response = client.get(f"/users/{user_id}/subscription", headers=auth_headers("user_ext_1"))
        assert response.status_code == 200
        assert response.json is None


class TestCurrentUser:
    def test_me(self, client):
        user_id = create_user()

        response = client.get("/users/me", headers=auth_headers("user_ext_1"))
        assert response.status_code == 200
        assert response.json["id"] == user_id
        assert response.json["clerk_id"] == "user_ext_1"

    def test_me_unknown_identity(self, client):
        response = client.get("/users/me", headers=auth_headers("user_ext_unknown"))
        assert response.status_code == 404

    def test_me_anonymous(self, client):
        response = client.get("/users/me")
        assert response.status_code == 401
