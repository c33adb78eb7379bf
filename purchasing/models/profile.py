"""
Profile attributes - attribution and identity metadata for backends.

A pure pass-through payload: every field is optional and nothing is validated.
"""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class PurchaseProfileAttributes:
    """Attributes forwarded to a backend for user matching."""

    # User profile
    email: str | None = None
    phone_number: str | None = None
    display_name: str | None = None
    push_token: str | None = None

    # Third-party integration identifiers
    adjust_id: str | None = None
    apps_flyer_id: str | None = None
    facebook_anonymous_id: str | None = None
    m_particle_id: str | None = None
    one_signal_id: str | None = None
    airship_channel_id: str | None = None
    clever_tap_id: str | None = None
    kochava_device_id: str | None = None
    mixpanel_distinct_id: str | None = None
    firebase_app_instance_id: str | None = None
    braze_alias_name: str | None = None
    braze_alias_label: str | None = None

    # Install attribution
    install_media_source: str | None = None  # e.g. utm_source=facebook&utm_campaign=spring_sale
    install_ad_group: str | None = None
    install_ad: str | None = None
    install_keyword: str | None = None
    install_creative: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Only the attributes that were supplied."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    def is_empty(self) -> bool:
        return not self.as_dict()
