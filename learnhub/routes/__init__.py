from fastapi import APIRouter

from .auth_routes import router as auth_router
from .course_routes import router as course_router
from .learning_routes import router as learning_router
from .certificate_routes import router as certificate_router
from .quiz_routes import router as quiz_router
from .assignment_routes import router as assignment_router
from .payment_routes import router as payment_router
from .admin_routes import router as admin_router

api_router_v1 = APIRouter(prefix="/api/v1")

# Learner and instructor routes
api_router_v1.include_router(auth_router)
api_router_v1.include_router(course_router)
api_router_v1.include_router(learning_router)
api_router_v1.include_router(certificate_router)
api_router_v1.include_router(quiz_router)
api_router_v1.include_router(assignment_router)
api_router_v1.include_router(payment_router)

# Admin routes are prefixed with /admin in admin_routes.py
api_router_v1.include_router(admin_router)

__all__ = [
    "api_router_v1"
]
