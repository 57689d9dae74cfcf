from tests.conftest import *


class TestCourses:
    def test_list_courses(self, client):
        create_course(title="Python for Data", price="49.99")
        create_course(title="Flask in Depth", price="19.00")

        response = client.get("/courses")
        assert response.status_code == 200
        assert [course["title"] for course in response.json] == ["Python for Data", "Flask in Depth"]
        assert response.json[0]["price"] == "49.99"

    def test_list_is_empty(self, client):
        response = client.get("/courses")
        assert response.status_code == 200
        assert response.json == []

    def test_get_course(self, client):
        course_id = create_course(title="Python for Data", description="Learn pandas")

        response = client.get(f"/courses/{course_id}")
        assert response.status_code == 200
        assert response.json["id"] == course_id
        assert response.json["description"] == "Learn pandas"

    def test_get_missing_course(self, client):
        response = client.get("/courses/999")
        assert response.status_code == 404
        assert "Course not found" in response.json["error"]
