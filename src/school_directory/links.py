"""Links for contacting a single person from the directory."""

import re
from typing import Optional
from urllib.parse import quote

# Characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"


def _digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def email_link(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return f"mailto:{email}"


def sms_link(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    return f"sms:{_digits(phone)}"


def call_link(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    return f"tel:{_digits(phone)}"


def map_link(line: str, city: str, state: str, zip_code: str) -> str:
    """Google Maps search URL for an address."""
    address = f"{line}, {city}, {state} {zip_code}"
    return f"https://maps.google.com?q={quote(address, safe=_URI_SAFE)}"


def vcard_data_uri(
    first_name: Optional[str],
    last_name: Optional[str],
    email: Optional[str] = None,
    phone: Optional[str] = None,
    second_phone: Optional[str] = None,
) -> str:
    """Build a vCard 3.0 as a data URI so it can be saved to a contacts app.

    Returns an empty string when either name part is missing.
    """
    if not first_name or not last_name:
        return ""

    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last_name};{first_name};;;",
        f"FN:{first_name} {last_name}",
    ]
    if email:
        lines.append(f"EMAIL;TYPE=INTERNET:{email}")
    if phone:
        lines.append(f"TEL;TYPE=CELL:{phone}")
    if second_phone:
        lines.append(f"TEL;TYPE=WORK:{second_phone}")
    lines.append("END:VCARD")

    return "data:text/vcard;charset=utf-8," + quote("\n".join(lines), safe=_URI_SAFE)
