from . import register_site
from .base_site import SiteProfile


@register_site("neffy")
class NeffySite(SiteProfile):
    form_configs = {
        "neffy_consumer_signup": {
            "page": "/sign-up",
            "form_selector": "form",
            "submit_button_selector": "#sign-up-form-submit",
            "fields": {
                "i_am": {
                    "type": "radio",
                    "selector": 'input[name="i_am"]',
                    "options": ["Patient", "Caregiver"],
                    "test_values": {"valid": "Patient", "alternative": "Caregiver", "invalid": None},
                    "required": True,
                },
                # only shown for caregivers
                "weight": {
                    "type": "checkbox",
                    "selector": 'input[name="weight"]',
                    "options": ["33 lbs to less than 66 lbs", "Greater than 66 lbs or more"],
                    "test_values": {"valid": ["33 lbs to less than 66 lbs"], "invalid": []},
                    "required": True,
                    "conditional": {"depends_on": "i_am", "show_when": "Caregiver"},
                },
                "prescription": {
                    "type": "radio",
                    "selector": 'input[name="prescription"]',
                    "options": [
                        "I don't have an epinephrine prescription",
                        "I have an epinephrine needle-injector prescription",
                        "I have a neffy prescription",
                    ],
                    "test_values": {"valid": "I don't have an epinephrine prescription", "invalid": None},
                    "required": True,
                },
                "subscription": {
                    "type": "checkbox",
                    "selector": 'input[name="subscription"]',
                    "options": [
                        "Get news and updates about neffy",
                        "Join neffyconnect for savings, support, and resources",
                        "Set up expiration reminders for neffy devices",
                    ],
                    "test_values": {
                        "valid": ["Get news and updates about neffy"],
                        "alternative": ["Set up expiration reminders for neffy devices"],
                        "invalid": [],
                    },
                    "required": True,
                },
                "device_1_expiration_year": {
                    "type": "select",
                    "selector": "#device_1_expiration_year",
                    "test_values": {"valid": "2025", "invalid": ""},
                    "conditional": {
                        "depends_on": "subscription",
                        "show_when": "Set up expiration reminders for neffy devices",
                    },
                },
                "device_1_expiration_month": {
                    "type": "select",
                    "selector": "#device_1_expiration_month",
                    "test_values": {"valid": "6", "invalid": ""},
                    "conditional": {
                        "depends_on": "subscription",
                        "show_when": "Set up expiration reminders for neffy devices",
                    },
                },
                "first_name": {
                    "type": "text",
                    "selector": "#first_name",
                    "test_values": {"valid": "John", "invalid": "", "too_long": "J" * 256},
                    "required": True,
                },
                "last_name": {
                    "type": "text",
                    "selector": "#last_name",
                    "test_values": {"valid": "Doe", "invalid": "", "too_long": "D" * 256},
                    "required": True,
                },
                "email": {
                    "type": "email",
                    "selector": "#email",
                    "test_values": {"valid": "john.doe@example.com", "invalid": "invalid-email"},
                    "required": True,
                },
                "phone": {
                    "type": "tel",
                    "selector": "#phone",
                    "test_values": {"valid": "2123421342", "invalid": "123"},
                    "required": True,
                },
                "zip": {
                    "type": "text",
                    "selector": "#zip",
                    "test_values": {"valid": "12345", "invalid": "ABCDE"},
                    "required": True,
                },
                "consent": {
                    "type": "checkbox",
                    "selector": "#consent",
                    "test_values": {"valid": True, "invalid": False},
                    "required": True,
                },
            },
            "expected_errors": {
                "empty_submission": [
                    "#error-i_am",
                    "#error-prescription",
                    "#error-subscription",
                    "#error-first_name",
                    "#error-last_name",
                    "#error-email",
                    "#error-phone",
                    "#error-zip",
                    "#error-consent",
                ],
                "invalid_submission": [
                    "#error-email",
                    "#error-phone",
                    "#error-zip",
                ],
            },
            "scenarios": {
                "invalid_email": {
                    "bucket": "valid",
                    "overrides": {"email": "invalid-email"},
                    "expected_errors": ["#error-email"],
                },
            },
            "success": {
                "selectors": [".sign-up-success", "#sign-up-thank-you"],
                "texts": ["Thank you for signing up"],
            },
            "tracking": {"form_code": "form_neffy_consumer_signup"},
        },
    }
