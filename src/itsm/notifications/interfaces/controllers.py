"""
Notification Controllers (API Routes)
======================================

Per-tenant email accounts, notification-type mappings, account
resolution, delivery status, test delivery and monitoring alert
notifications.

Controllers are thin - they delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.config import settings
from itsm.infrastructure.database import get_session
from itsm.notifications.application import (
    AlertEventRequest,
    AlertNotificationService,
    DeliveryCheckRequest,
    DeliveryCheckResponse,
    DispatchResultResponse,
    EmailAccountCreate,
    EmailAccountResponse,
    IEmailSender,
    ISlackNotifier,
    MappingUpdateRequest,
    NotificationDispatcher,
    NotificationMappingResponse,
    NotificationSettingsService,
    NotificationStatusResponse,
    NotificationTestService,
    ResolvedAccountResponse,
)
from itsm.notifications.application.dto import EmailStatus, NotificationTypeStr, SlackStatus
from itsm.notifications.domain import AlertNotification, EmailTransportConfig
from itsm.notifications.infrastructure import (
    SMTPEmailSender,
    SQLAlchemyNotificationSettingsRepository,
    SQLAlchemyRecipientDirectory,
)

router = APIRouter(prefix="/notifications/tenants/{tenant_id}", tags=["Notifications"])


# ========== Dependencies ==========

def get_email_sender() -> IEmailSender:
    return SMTPEmailSender()


def get_slack_notifier(request: Request) -> Optional[ISlackNotifier]:
    """Slack client created at startup, None when Slack is not configured."""
    return getattr(request.app.state, "slack_client", None)


def get_fallback_email_config() -> Optional[EmailTransportConfig]:
    if not settings.fallback_smtp_configured:
        return None
    return EmailTransportConfig(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        from_address=settings.smtp_from,
        secure=settings.smtp_secure,
    )


async def get_settings_service(
    session: AsyncSession = Depends(get_session)
) -> NotificationSettingsService:
    """Get notification settings service instance."""
    return NotificationSettingsService(SQLAlchemyNotificationSettingsRepository(session))


async def get_dispatcher(
    session: AsyncSession = Depends(get_session),
    email_sender: IEmailSender = Depends(get_email_sender),
    slack_notifier: Optional[ISlackNotifier] = Depends(get_slack_notifier),
    fallback_config: Optional[EmailTransportConfig] = Depends(get_fallback_email_config)
) -> NotificationDispatcher:
    """Get notification dispatcher instance."""
    return NotificationDispatcher(
        SQLAlchemyNotificationSettingsRepository(session),
        email_sender,
        slack_notifier,
        fallback_config,
        settings.notification_subject_prefix
    )


async def get_alert_service(
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> AlertNotificationService:
    return AlertNotificationService(dispatcher, SQLAlchemyRecipientDirectory(session))


async def get_test_service(
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
) -> NotificationTestService:
    return NotificationTestService(dispatcher, SQLAlchemyRecipientDirectory(session))


# ========== Email Accounts ==========

@router.get(
    "/accounts",
    response_model=List[EmailAccountResponse],
    summary="List email accounts"
)
async def list_accounts(
    tenant_id: int,
    service: NotificationSettingsService = Depends(get_settings_service)
):
    accounts = await service.list_accounts(tenant_id)
    return [EmailAccountResponse.from_entity(a) for a in accounts]


@router.post(
    "/accounts",
    response_model=EmailAccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add email account",
    description="""
    Add an outbound SMTP account. The tenant's first account becomes the
    default; `is_default: true` moves the default flag to the new account.
    """
)
async def create_account(
    tenant_id: int,
    request: EmailAccountCreate,
    service: NotificationSettingsService = Depends(get_settings_service)
):
    account = await service.create_account(tenant_id, request)
    return EmailAccountResponse.from_entity(account)


@router.delete(
    "/accounts/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete email account",
    description="Deletes the account and every mapping that routes to it."
)
async def delete_account(
    tenant_id: int,
    account_id: str,
    service: NotificationSettingsService = Depends(get_settings_service)
):
    await service.delete_account(tenant_id, account_id)


@router.post(
    "/accounts/{account_id}/default",
    response_model=List[EmailAccountResponse],
    summary="Set default email account"
)
async def set_default_account(
    tenant_id: int,
    account_id: str,
    service: NotificationSettingsService = Depends(get_settings_service)
):
    accounts = await service.set_default_account(tenant_id, account_id)
    return [EmailAccountResponse.from_entity(a) for a in accounts]


# ========== Mappings ==========

@router.get(
    "/mappings",
    response_model=List[NotificationMappingResponse],
    summary="List notification mappings"
)
async def list_mappings(
    tenant_id: int,
    service: NotificationSettingsService = Depends(get_settings_service)
):
    mappings = await service.list_mappings(tenant_id)
    return [NotificationMappingResponse.from_entity(m) for m in mappings]


@router.put(
    "/mappings/{notification_type}",
    response_model=List[NotificationMappingResponse],
    summary="Route a notification type to an account"
)
async def upsert_mapping(
    tenant_id: int,
    request: MappingUpdateRequest,
    notification_type: NotificationTypeStr = Path(...),
    service: NotificationSettingsService = Depends(get_settings_service)
):
    mappings = await service.upsert_mapping(tenant_id, notification_type, request.email_account_id)
    return [NotificationMappingResponse.from_entity(m) for m in mappings]


@router.get(
    "/resolve/{notification_type}",
    response_model=ResolvedAccountResponse,
    summary="Resolve sending account",
    description="""
    The account a notification of this type would be sent through: the
    mapped account, else the default, else the first account created.
    """
)
async def resolve_account(
    tenant_id: int,
    notification_type: NotificationTypeStr = Path(...),
    service: NotificationSettingsService = Depends(get_settings_service)
):
    account = await service.resolve_account(tenant_id, notification_type)
    return ResolvedAccountResponse(
        type=notification_type,
        account=EmailAccountResponse.from_entity(account) if account else None
    )


# ========== Delivery ==========

@router.get(
    "/settings",
    response_model=NotificationStatusResponse,
    summary="Notification delivery status",
    description="Whether Slack and email delivery are configured for the tenant. Secrets are never returned."
)
async def get_delivery_status(
    tenant_id: int,
    service: NotificationSettingsService = Depends(get_settings_service),
    slack_notifier: Optional[ISlackNotifier] = Depends(get_slack_notifier),
    fallback_config: Optional[EmailTransportConfig] = Depends(get_fallback_email_config)
):
    accounts = await service.list_accounts(tenant_id)
    mappings = await service.list_mappings(tenant_id)
    default = next((a for a in accounts if a.is_default), None)

    return NotificationStatusResponse(
        slack=SlackStatus(
            configured=slack_notifier is not None,
            bot_token_configured=bool(settings.slack_bot_token),
            channel_id_configured=bool(settings.slack_channel_id),
        ),
        email=EmailStatus(
            configured=bool(accounts) or fallback_config is not None,
            accounts=len(accounts),
            mappings=len(mappings),
            default_account_id=default.id if default else None,
            fallback_configured=fallback_config is not None,
        ),
    )


@router.post(
    "/test",
    response_model=DeliveryCheckResponse,
    summary="Send a test notification",
    description="""
    Send a sample notification of the given type over one channel.

    - `email`: sent to `recipient` through the account resolved for the type
    - `slack`: posted to the configured channel (ticket types only)

    Returns 502 when delivery was attempted and failed.
    """
)
async def send_test_notification(
    tenant_id: int,
    request: DeliveryCheckRequest,
    response: Response,
    service: NotificationTestService = Depends(get_test_service)
):
    result = await service.send_test(
        tenant_id, request.type, request.channel, request.recipient, request.requested_by
    )

    success = result.slack_sent if request.channel == "slack" else result.email_sent
    if success:
        message = f"Test {request.channel} notification sent"
    else:
        response.status_code = status.HTTP_502_BAD_GATEWAY
        message = f"Failed to send test {request.channel} notification"
        if result.skipped_reason:
            message = f"{message}: {result.skipped_reason}"

    return DeliveryCheckResponse(
        success=success,
        message=message,
        result=DispatchResultResponse(**result.to_dict())
    )


@router.post(
    "/alerts",
    response_model=DispatchResultResponse,
    summary="Notify a monitoring alert event",
    description="""
    Email a monitoring alert event through the account mapped to `monitoring`.
    Raised and resolved alerts go to admins and agents, acknowledgements to
    admins only. Delivery failures are reported in the body, not as errors.
    """
)
async def notify_alert(
    tenant_id: int,
    request: AlertEventRequest,
    service: AlertNotificationService = Depends(get_alert_service)
):
    alert = AlertNotification(
        alert_id=request.alert_id,
        event=request.event,
        title=request.title,
        description=request.description,
        severity=request.severity,
        source=request.source,
        actor=request.actor,
        metrics=request.metrics,
    )
    result = await service.notify(tenant_id, alert)
    return DispatchResultResponse(**result.to_dict())


notifications_router = router
