"""
Dependencies resolving the collaborators owned by the application lifespan
"""
from fastapi import Request
from storefront.config import Settings
from storefront.services.payment_client import PaymentProviderClient
from storefront.services.image_client import ImageHostClient
from storefront.services.mailer import Mailer


def get_settings(request: Request) -> Settings:
    """Dependency for the settings the app was built with"""
    return request.app.state.settings


def get_payment_client(request: Request) -> PaymentProviderClient:
    """Dependency for the payment provider client"""
    return request.app.state.payment_client


def get_image_client(request: Request) -> ImageHostClient:
    """Dependency for the image host client"""
    return request.app.state.image_client


def get_mailer(request: Request) -> Mailer:
    """Dependency for outbound email"""
    return request.app.state.mailer
