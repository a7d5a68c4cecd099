"""
Milestone notifications, rendered from Jinja templates in
EMAILS_TEMPLATES_DIR and delivered over SMTP with the `emails` library.
Without SMTP settings every message is rendered and logged instead.
"""
import logging
import os
from functools import lru_cache
from typing import Any, Optional

import emails
from emails.template import JinjaTemplate

from learnhub.core.config import settings

logger = logging.getLogger(__name__)

SMTP_ACCEPTED = (250, 252)


@lru_cache(maxsize=None)
def _load_template(template_name: str) -> JinjaTemplate:
    with open(os.path.join(settings.EMAILS_TEMPLATES_DIR, template_name), encoding="utf-8") as f:
        return JinjaTemplate(f.read())

def _smtp_options() -> dict:
    options = {
        "host": settings.EMAIL_HOST,
        "port": settings.EMAIL_PORT,
        "tls": settings.EMAIL_USE_TLS,
        "ssl": settings.EMAIL_USE_SSL,
    }
    if settings.EMAIL_USERNAME:
        options.update(user=settings.EMAIL_USERNAME, password=settings.EMAIL_PASSWORD)
    return options

def _notify(to_email: str, subject: str, template_name: str, **context: Any) -> bool:
    """
    Renders `template_name` with `context` and sends it. Returns False when
    the template is missing or delivery fails; it never raises, since it
    runs as a background task after the response is sent.
    """
    context.setdefault("APP_NAME", settings.PROJECT_NAME)
    context.setdefault("APP_FRONTEND_URL", settings.APP_FRONTEND_URL)
    try:
        template = _load_template(template_name)
    except OSError as e:
        logger.error(f"Email template '{template_name}' unavailable, not emailing {to_email}: {e}")
        return False

    if not settings.EMAIL_HOST or not settings.EMAIL_FROM_ADDRESS:
        logger.info(f"SMTP not configured; email to {to_email} ('{subject}') logged only")
        logger.debug(template.render(**context)[:500])
        return True

    message = emails.Message(
        subject=subject,
        html=template,
        mail_from=(settings.EMAIL_FROM_NAME, settings.EMAIL_FROM_ADDRESS),
    )
    try:
        response = message.send(to=to_email, render=context, smtp=_smtp_options())
    except Exception as e:
        logger.error(f"Sending '{template_name}' to {to_email} raised: {e}", exc_info=True)
        return False

    if response is not None and response.status_code in SMTP_ACCEPTED:
        logger.info(f"Email '{subject}' sent to {to_email}")
        return True
    logger.error(
        f"SMTP rejected '{template_name}' for {to_email}: "
        f"{getattr(response, 'status_code', None)} {getattr(response, 'error', None)}"
    )
    return False

# --- Milestone notifications ---
# Scheduled with BackgroundTasks after the triggering transaction commits.
# They receive plain values, never ORM objects bound to the request session.

def send_welcome_email(to_email: str, user_name: str) -> bool:
    return _notify(to_email, f"Welcome to {settings.PROJECT_NAME}", "welcome.html", user_name=user_name)

def send_enrollment_confirmation_email(to_email: str, user_name: str, course_title: str, course_id: int) -> bool:
    return _notify(
        to_email, f"You're enrolled in {course_title}", "enrollment_confirmed.html",
        user_name=user_name,
        course_title=course_title,
        course_url=f"{settings.APP_FRONTEND_URL}/courses/{course_id}",
    )

def send_course_completed_email(to_email: str, user_name: str, course_title: str, course_id: int) -> bool:
    return _notify(
        to_email, f"You completed {course_title}!", "course_completed.html",
        user_name=user_name,
        course_title=course_title,
        certificate_url=f"{settings.APP_FRONTEND_URL}/courses/{course_id}/certificate",
    )

def send_certificate_issued_email(to_email: str, user_name: str, course_title: str,
                                  certificate_id: str, verification_code: str, issue_date: str) -> bool:
    return _notify(
        to_email, f"Your certificate for {course_title}", "certificate_issued.html",
        user_name=user_name,
        course_title=course_title,
        certificate_id=certificate_id,
        verification_code=verification_code,
        issue_date=issue_date,
        verify_url=f"{settings.APP_FRONTEND_URL}/certificates/verify?code={verification_code}",
    )

def send_quiz_result_email(to_email: str, user_name: str, quiz_title: str,
                           score: float, passed: bool, passing_score: float) -> bool:
    return _notify(
        to_email, f"Your result for {quiz_title}", "quiz_results.html",
        user_name=user_name,
        quiz_title=quiz_title,
        score=f"{score:.2f}",
        passed=passed,
        passing_score=f"{passing_score:.0f}",
    )

def send_assignment_graded_email(to_email: str, user_name: str, assignment_title: str,
                                 grade: float, max_points: int, feedback: Optional[str]) -> bool:
    return _notify(
        to_email, f"Your submission for {assignment_title} was graded", "assignment_graded.html",
        user_name=user_name,
        assignment_title=assignment_title,
        grade=f"{grade:g}",
        max_points=max_points,
        feedback=feedback,
    )
