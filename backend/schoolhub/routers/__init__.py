"""HTTP and WebSocket routers."""
from .assignments import router as assignments_router
from .attendance import router as attendance_router
from .courses import router as courses_router
from .enrollment_requests import router as enrollment_requests_router
from .grades import router as grades_router
from .notifications import router as notifications_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    'assignments_router',
    'attendance_router',
    'courses_router',
    'enrollment_requests_router',
    'grades_router',
    'notifications_router',
    'realtime_router',
    'users_router',
]
