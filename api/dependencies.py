"""
FastAPI dependency providers.

Routers receive sessions, repositories and services through these
functions so tests can swap them with app.dependency_overrides.
"""

from typing import Annotated, AsyncIterator

from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_async_session
from salon.repositories import (
    SqlBookingRepository,
    SqlOtpRepository,
    SqlSecuritySettingsRepository,
    SqlUserRepository,
)
from salon.repositories.sql import SessionFactory
from salon.services.otp_service import OtpAuthenticator, OtpNotifier
from salon.transactions import BookingTransaction
from shared.email_client import EmailClient


def get_session_factory() -> SessionFactory:
    return get_async_session


async def get_db_session(
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def get_booking_transaction(
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
) -> BookingTransaction:
    return BookingTransaction(SqlBookingRepository(session_factory))


def get_otp_notifier() -> OtpNotifier:
    return EmailClient()


def get_otp_authenticator(
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
    notifier: Annotated[OtpNotifier, Depends(get_otp_notifier)],
    background_tasks: BackgroundTasks,
) -> OtpAuthenticator:
    """OTP emails are sent as background tasks, after the response is returned."""
    return OtpAuthenticator(
        users=SqlUserRepository(session_factory),
        otps=SqlOtpRepository(session_factory),
        security=SqlSecuritySettingsRepository(session_factory),
        notifier=notifier,
        schedule=background_tasks.add_task,
    )


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
BookingTransactionDep = Annotated[BookingTransaction, Depends(get_booking_transaction)]
AuthenticatorDep = Annotated[OtpAuthenticator, Depends(get_otp_authenticator)]
