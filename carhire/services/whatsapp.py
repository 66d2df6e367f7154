import logging
import re

import requests

from carhire.core.config import settings

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def digest_recipients() -> list[str]:
    return [d for d in (digits(p) for p in settings.WABA_DIGEST_RECIPIENTS.split(",")) if d]


def _require(name: str, value: str | None) -> str:
    if not value:
        raise RuntimeError(f"Missing required env: {name}")
    return value


# -------------------------------------------------------------------
# Internal helper (ONLY place that talks to the Graph API)
# -------------------------------------------------------------------
def _post_json(url: str, payload: dict) -> dict:
    token = _require("WABA_ACCESS_TOKEN", settings.WABA_ACCESS_TOKEN)

    res = requests.post(
        url,
        json=payload,
        headers={"Authorization": f"Bearer {token}"},
        timeout=10,
    )

    try:
        data = res.json()
    except ValueError:
        data = {}

    if not res.ok:
        err = data.get("error") if isinstance(data, dict) else None
        raise RuntimeError(f"[WABA] {res.status_code} {err or res.reason}")

    return data


# -------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------
def send_text(to: str, body: str) -> dict:
    """
    Send a plain text WhatsApp message. `to` is an E.164 number; anything
    that is not a digit is stripped. Raises RuntimeError on failure.
    """
    phone_id = _require("WABA_PHONE_NUMBER_ID", settings.WABA_PHONE_NUMBER_ID)
    url = f"https://graph.facebook.com/{settings.WABA_GRAPH_VERSION}/{phone_id}/messages"

    logger.info("Sending WhatsApp text to %s (%d chars)", to, len(body))

    return _post_json(
        url,
        {
            "messaging_product": "whatsapp",
            "to": digits(to),
            "type": "text",
            "text": {"body": body},
        },
    )
