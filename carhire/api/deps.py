import hmac

from fastapi import Cookie, Header, HTTPException

from carhire.core.config import settings


def _matches(candidate: str | None) -> bool:
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), settings.ADMIN_API_KEY.encode())


# =========================
# 🔒 Admin guard (header or session cookie)
# =========================
def require_admin(
    x_admin_key: str | None = Header(None),
    admin_session: str | None = Cookie(None),
):
    if not (_matches(x_admin_key) or _matches(admin_session)):
        raise HTTPException(status_code=401, detail="Unauthorized")
