"""Tests for the notification inbox."""

import pytest
from fastapi import status

from schoolhub.models import Notification, NotificationType


@pytest.fixture
def make_notification(db_session):
    def factory(recipient, title="Hello", is_read=False):
        notification = Notification(recipient_id=recipient.id, type=NotificationType.system, title=title,
                                    message=f"{title} message", is_read=is_read)
        db_session.add(notification)
        db_session.commit()
        return notification

    return factory


class TestNotificationApi:
    def test_teacher_sends_announcement(self, client, db_session, teacher, student, auth_headers):
        payload = {
            "recipient": student.id,
            "type": "announcement",
            "title": "Field trip",
            "message": "Bring a packed lunch",
            "relatedResource": {"type": "course", "id": "c-1"},
            "priority": "high",
        }
        response = client.post("/api/notifications", json=payload, headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["sender"] == teacher.id
        assert data["recipient"] == student.id
        assert data["relatedResource"] == {"type": "course", "id": "c-1"}
        assert data["priority"] == "high"

    def test_students_cannot_send(self, client, student, teacher, auth_headers):
        payload = {"recipientId": teacher.id, "type": "message", "title": "Hi", "message": "Hello"}
        response = client.post("/api/notifications", json=payload, headers=auth_headers(student))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_recipient(self, client, admin, auth_headers):
        payload = {"recipient": "ghost", "type": "system", "title": "Hi", "message": "Hello"}
        response = client.post("/api/notifications", json=payload, headers=auth_headers(admin))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_inbox_is_personal(self, client, make_notification, student, admin, auth_headers):
        make_notification(student, "One")
        make_notification(student, "Two")
        make_notification(admin, "Admin only")

        inbox = client.get("/api/notifications", headers=auth_headers(student)).json()
        assert inbox["total"] == 2
        assert {n["title"] for n in inbox["data"]} == {"One", "Two"}

        admin_inbox = client.get("/api/notifications", headers=auth_headers(admin)).json()
        assert [n["title"] for n in admin_inbox["data"]] == ["Admin only"]

    def test_unread_count_and_mark_all(self, client, make_notification, student, auth_headers):
        headers = auth_headers(student)
        make_notification(student, "One")
        make_notification(student, "Two")
        make_notification(student, "Seen", is_read=True)

        assert client.get("/api/notifications/unread/count", headers=headers).json()["data"] == {"count": 2}
        assert client.put("/api/notifications/read-all", headers=headers).json()["data"] == {"updated": 2}
        assert client.get("/api/notifications/unread/count", headers=headers).json()["data"] == {"count": 0}

    def test_mark_read_by_owner_only(self, client, make_notification, student, parent, auth_headers):
        notification = make_notification(student)
        assert client.put(f"/api/notifications/{notification.id}/read",
                          headers=auth_headers(parent)).status_code == status.HTTP_403_FORBIDDEN

        response = client.put(f"/api/notifications/{notification.id}/read", headers=auth_headers(student))
        data = response.json()["data"]
        assert data["isRead"] is True
        assert data["readAt"] is not None

    def test_delete(self, client, db_session, make_notification, student, teacher, auth_headers):
        notification = make_notification(student)
        assert client.delete(f"/api/notifications/{notification.id}",
                             headers=auth_headers(teacher)).status_code == status.HTTP_403_FORBIDDEN
        assert client.delete(f"/api/notifications/{notification.id}", headers=auth_headers(student)).status_code == 200
        assert db_session.query(Notification).count() == 0

    def test_filter_unread(self, client, make_notification, student, auth_headers):
        make_notification(student, "New")
        make_notification(student, "Old", is_read=True)
        response = client.get("/api/notifications?isRead=false", headers=auth_headers(student))
        assert [n["title"] for n in response.json()["data"]] == ["New"]
