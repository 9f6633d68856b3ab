from typing import Dict


# Key format: "{notification_type}.{part}.{locale}"; English is the fallback locale.
TEMPLATES: Dict[str, str] = {
    "sos.subject.en": "EMERGENCY: {name} triggered an SOS alert",
    "sos.email.en": (
        "{name} has triggered an SOS emergency alert.\n\n"
        "Time: {time}\n"
        "Location: {link}\n"
        "Message: {message}\n\n"
        "Please try to reach them immediately or contact local emergency services."
    ),
    "sos.sms.en": "SOS from {name} at {time}. Location: {link}",
    "sos_confirmation.title.en": "SOS alert activated",
    "sos_confirmation.push.en": (
        "Your emergency contacts and nearby responders are being notified."
    ),
    "risk_zone.title.en": "Risk zone warning",
    "risk_zone.push.en": "Warning: you entered {zone}, a {risk} risk zone. Stay alert.",
}


def get_template(notification_type: str, part: str, locale: str = "en") -> str:
    key = f"{notification_type}.{part}.{locale}"
    if key in TEMPLATES:
        return TEMPLATES[key]
    return TEMPLATES.get(f"{notification_type}.{part}.en", "")


def render(notification_type: str, part: str, variables: Dict[str, str], locale: str = "en") -> str:
    message = get_template(notification_type, part, locale)
    for key, value in variables.items():
        message = message.replace(f"{{{key}}}", value)
    return message


def maps_link(latitude: float, longitude: float) -> str:
    return f"https://maps.google.com/?q={latitude},{longitude}"
