"""
Read-only course queries.
"""
from errors import CourseNotFound
from models import db, Course


class CourseHandler:

    @staticmethod
    def list_courses():
        return Course.query.order_by(Course.id).all()

    @staticmethod
    def get_course(course_id):
        course = db.session.get(Course, course_id)
        if not course:
            raise CourseNotFound()
        return course
