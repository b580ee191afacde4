from ..actions import WaitStep, CustomStep
from . import register_site
from .base_site import SiteProfile


def open_fake_selects(engine) -> None:
    """Force the custom dropdowns open and pick a specialty and a state."""
    engine.evaluate(
        "() => {"
        " const fields = document.querySelectorAll('.form-select');"
        " const pick = (field, value) => {"
        "   if (!field) return;"
        "   const menu = field.querySelector('.select__menu');"
        "   if (!menu) return;"
        "   menu.style.display = 'block'; menu.style.opacity = '1'; menu.style.visibility = 'visible';"
        "   const option = menu.querySelector(`li[data-value='${value}']`);"
        "   if (option) option.click();"
        " };"
        " pick(fields[0], 'Primary care physician');"
        " pick(fields[1], 'NY');"
        "}"
    )


@register_site("xiaflex")
class XiaflexSite(SiteProfile):
    pre_form_actions = [
        WaitStep(500),
        CustomStep(open_fake_selects, description="open custom dropdowns"),
        WaitStep(500),
    ]

    form_configs = {
        "xiaflex_patient_get_updates": {
            "page": "/patient/resources/updates/",
            "form_selector": "form",
            "submit_button_selector": 'button[type="submit"].btn-primary',
            "fields": {
                "firstName": {
                    "type": "text",
                    "selector": "#firstName",
                    "test_values": {"valid": "Chester", "invalid": ""},
                },
                "lastName": {
                    "type": "text",
                    "selector": "#lastName",
                    "test_values": {"valid": "Tester", "invalid": ""},
                },
                "emailAddress": {
                    "type": "email",
                    "selector": "#emailAddress",
                    "test_values": {"valid": "chester.tester@test.com", "invalid": "invalid-email"},
                },
                "iAm": {
                    "type": "radio",
                    "selector": 'input[name="iAm"]',
                    "options": [
                        "diagnosed with Peyronie's disease or seeking treatment info",
                        "Currently being treated with XIAFLEX or am about to start treatment",
                        "a partner of someone who may be living with Peyronie's disease",
                    ],
                    "test_values": {
                        "valid": "Currently being treated with XIAFLEX or am about to start treatment",
                        "invalid": None,
                    },
                },
                "iAmSub": {
                    "type": "radio",
                    "selector": 'input[name="iAmSub"]',
                    "options": [
                        "I am currently receiving treatment with XIAFLEX",
                        "I am about to start treatment with XIAFLEX",
                    ],
                    "test_values": {"valid": "I am currently receiving treatment with XIAFLEX", "invalid": None},
                    "conditional": {
                        "depends_on": "iAm",
                        "show_when": "Currently being treated with XIAFLEX or am about to start treatment",
                    },
                },
                "treatments": {
                    "type": "checkbox",
                    "selector": 'input[name="treatments"]',
                    "options": [
                        "Topical Creams",
                        "Supplements",
                        "Traction Devices",
                        "Stretching Exercises",
                        "Penile Implants",
                        "XIAFLEX",
                        "None",
                        "Not Sure",
                        "Other",
                    ],
                    "test_values": {"valid": ["Topical Creams", "Stretching Exercises"], "invalid": []},
                },
                "over18": {
                    "type": "checkbox",
                    "selector": "#over18",
                    "test_values": {"valid": True, "invalid": False},
                },
            },
            "tracking": {"form_code": "xiaflex_patient_get_updates"},
        },
    }
