import logging
from typing import Callable, List, Optional, Tuple

import requests

from huddle.core.config import Settings
from huddle.core.exceptions import DeliveryError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15


def _send_via_twilio(settings: Settings, mobile_number: str, body: str) -> bool:
    url = f"https://api.twilio.com/2010-04-01/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json"
    response = requests.post(
        url,
        data={"From": settings.TWILIO_PHONE_NUMBER, "To": f"+91{mobile_number}", "Body": body},
        auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
        timeout=REQUEST_TIMEOUT,
    )
    return response.status_code in (200, 201)


def _send_via_msg91(settings: Settings, mobile_number: str, body: str, code: Optional[str]) -> bool:
    response = requests.post(
        "https://api.msg91.com/api/v5/flow/",
        json={
            "flow_id": settings.MSG91_TEMPLATE_ID,
            "sender": "HUDDLE",
            "mobiles": f"91{mobile_number}",
            "VAR1": code or body,
        },
        headers={"Authkey": settings.MSG91_AUTH_KEY},
        timeout=REQUEST_TIMEOUT,
    )
    return response.ok and response.json().get("type") == "success"


def _send_via_2factor(settings: Settings, mobile_number: str, body: str, code: Optional[str]) -> bool:
    url = f"https://2factor.in/API/V1/{settings.TWO_FACTOR_API_KEY}/SMS/{mobile_number}/{code or body}/HUDDLE_OTP"
    response = requests.get(url, timeout=REQUEST_TIMEOUT)
    return response.ok and str(response.json().get("Status", "")).lower() == "success"


def configured_providers(settings: Settings) -> List[Tuple[str, Callable[[str, str, Optional[str]], bool]]]:
    """Providers in the order they are tried; unconfigured ones are left out."""
    providers = []
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER:
        providers.append(("twilio", lambda number, body, code: _send_via_twilio(settings, number, body)))
    if settings.MSG91_AUTH_KEY and settings.MSG91_TEMPLATE_ID:
        providers.append(("msg91", lambda number, body, code: _send_via_msg91(settings, number, body, code)))
    if settings.TWO_FACTOR_API_KEY:
        providers.append(("2factor", lambda number, body, code: _send_via_2factor(settings, number, body, code)))
    return providers


def send_sms(settings: Settings, mobile_number: str, body: str, code: Optional[str] = None) -> str:
    if settings.is_development:
        logger.info("DEVELOPMENT MODE: SMS to %s logged instead of sent: %s", mobile_number, body)
        return "console"

    for name, send in configured_providers(settings):
        try:
            if send(mobile_number, body, code):
                logger.info("SMS to %s sent via %s", mobile_number, name)
                return name
            logger.warning("SMS provider %s refused message to %s", name, mobile_number)
        except (requests.RequestException, ValueError) as e:
            logger.warning("SMS provider %s failed for %s: %s", name, mobile_number, e)

    raise DeliveryError(f"All SMS providers failed for {mobile_number}")
