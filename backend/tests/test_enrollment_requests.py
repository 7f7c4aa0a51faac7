"""Tests for the enrollment request lifecycle."""

import pytest
from fastapi import status

from schoolhub.models import EnrollmentRequest, Notification, UserRole


@pytest.fixture
def open_course(make_course, teacher):
    """A course the ``student`` fixture is not enrolled in."""
    return make_course(teacher)


def ask(client, course, headers):
    return client.post(f"/api/courses/{course.id}/enroll-request", headers=headers)


def decide(client, request_id, verdict, headers, notes=None):
    body = {"status": verdict}
    if notes:
        body["notes"] = notes
    return client.put(f"/api/enrollment-requests/{request_id}", json=body, headers=headers)


class TestRequesting:
    def test_duplicate_pending_conflicts(self, client, open_course, student, auth_headers):
        headers = auth_headers(student)
        assert ask(client, open_course, headers).status_code == status.HTTP_201_CREATED
        response = ask(client, open_course, headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["message"] == "You already have a pending request for this course"

    def test_enrolled_student_conflicts(self, client, course, student, auth_headers):
        response = ask(client, course, auth_headers(student))
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_only_students_ask(self, client, open_course, parent, auth_headers):
        assert ask(client, open_course, auth_headers(parent)).status_code == status.HTTP_403_FORBIDDEN

    def test_rejected_request_is_reopened(self, client, db_session, open_course, student, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        rejected = decide(client, request_id, "rejected", auth_headers(teacher), notes="Class is full")
        assert rejected.json()["data"]["notes"] == "Class is full"

        again = ask(client, open_course, auth_headers(student))
        assert again.status_code == status.HTTP_201_CREATED
        data = again.json()["data"]
        assert data["id"] == request_id
        assert data["status"] == "pending"
        assert data["notes"] is None
        assert data["responseBy"] is None
        assert db_session.query(EnrollmentRequest).count() == 1


class TestDeciding:
    def test_approval_is_absorbing(self, client, open_course, student, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        assert decide(client, request_id, "approved", auth_headers(teacher)).status_code == 200

        for verdict in ("approved", "rejected"):
            response = decide(client, request_id, verdict, auth_headers(teacher))
            assert response.status_code == status.HTTP_400_BAD_REQUEST
        # Approved students are enrolled, so asking again conflicts
        assert ask(client, open_course, auth_headers(student)).status_code == status.HTTP_409_CONFLICT

    def test_rejection_notifies_without_enrolling(self, client, db_session, open_course, student, teacher,
                                                  auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        decide(client, request_id, "rejected", auth_headers(teacher))

        db_session.refresh(open_course)
        assert not open_course.has_student(student.id)
        [note] = db_session.query(Notification).filter(Notification.recipient_id == student.id).all()
        assert note.title == "Enrollment Request Rejected"

    def test_other_teacher_cannot_decide(self, client, open_course, student, make_user, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        response = decide(client, request_id, "approved", auth_headers(make_user(UserRole.teacher)))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_verdict(self, client, open_course, student, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        response = decide(client, request_id, "canceled", auth_headers(teacher))
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestCanceling:
    def test_student_cancels_pending(self, client, db_session, open_course, student, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        response = client.delete(f"/api/enrollment-requests/{request_id}", headers=auth_headers(student))
        assert response.status_code == 200
        assert db_session.query(EnrollmentRequest).count() == 0

    def test_cannot_cancel_decided(self, client, open_course, student, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        decide(client, request_id, "rejected", auth_headers(teacher))
        response = client.delete(f"/api/enrollment-requests/{request_id}", headers=auth_headers(student))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_teacher_cannot_cancel(self, client, open_course, student, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        response = client.delete(f"/api/enrollment-requests/{request_id}", headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestListing:
    def test_student_lists_own_requests(self, client, open_course, student, make_user, auth_headers):
        other = make_user(UserRole.student)
        ask(client, open_course, auth_headers(student))
        ask(client, open_course, auth_headers(other))

        mine = client.get("/api/enrollment-requests", headers=auth_headers(student)).json()
        assert mine["total"] == 1
        assert mine["data"][0]["student"] == student.id

        pending = client.get("/api/enrollment-requests?status=pending", headers=auth_headers(student)).json()
        assert pending["total"] == 1

    def test_course_listing_for_staff(self, client, open_course, student, make_user, teacher, auth_headers):
        other = make_user(UserRole.student)
        first = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        ask(client, open_course, auth_headers(other))
        decide(client, first, "rejected", auth_headers(teacher))

        url = f"/api/courses/{open_course.id}/enrollment-requests"
        everything = client.get(url, headers=auth_headers(teacher)).json()
        assert everything["count"] == 2
        assert everything["data"][0]["studentInfo"]["id"] in (student.id, other.id)

        pending = client.get(f"{url}?status=pending", headers=auth_headers(teacher)).json()
        assert [r["student"] for r in pending["data"]] == [other.id]

        assert client.get(f"{url}?status=bogus", headers=auth_headers(teacher)).status_code == 400
        assert client.get(url, headers=auth_headers(student)).status_code == status.HTTP_403_FORBIDDEN

    def test_request_detail_visibility(self, client, open_course, student, make_user, teacher, auth_headers):
        request_id = ask(client, open_course, auth_headers(student)).json()["data"]["id"]
        url = f"/api/enrollment-requests/{request_id}"
        assert client.get(url, headers=auth_headers(teacher)).status_code == 200
        assert client.get(url, headers=auth_headers(make_user(UserRole.student))).status_code == 403
        assert client.get("/api/enrollment-requests/missing", headers=auth_headers(teacher)).status_code == 404
