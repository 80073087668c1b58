# storefront/deps.py
from fastapi import HTTPException, Request, status

from .ai import TextGenerator
from .config import Settings
from .notifications import NotificationDispatcher


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_alert_sink(request: Request):
    # None when SLACK_WEBHOOK_URL is not configured
    return request.app.state.alert_sink


def get_text_generator(request: Request) -> TextGenerator:
    generator = request.app.state.text_generator
    if generator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="AI generation is not configured")
    return generator
