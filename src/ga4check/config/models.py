from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from ..automation.errors import ConfigurationError


FIELD_TYPES = ("radio", "checkbox", "text", "email", "tel", "select")
VALUE_BUCKETS = ("valid", "invalid", "alternative", "empty", "too_long")

_MISSING = object()


@dataclass
class Conditional:
    depends_on: str
    show_when: Any

    def satisfied_by(self, value: Any) -> bool:
        if isinstance(value, (list, tuple, set)):
            return self.show_when in value
        return value is not None and value == self.show_when


@dataclass
class FormFieldConfig:
    """Static description of one form field and the values used to exercise it."""
    name: str
    type: str
    selector: str
    options: List[str] = field(default_factory=list)
    test_values: Dict[str, Any] = field(default_factory=dict)
    required: bool = False
    conditional: Optional[Conditional] = None

    def value_for(self, bucket: str, default: Any = _MISSING) -> Any:
        """Return the test value for ``bucket``; raises KeyError if absent and no default."""
        if bucket in self.test_values:
            return self.test_values[bucket]
        if default is not _MISSING:
            return default
        raise KeyError(bucket)

    def has_value(self, bucket: str) -> bool:
        return bucket in self.test_values

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'FormFieldConfig':
        field_type = data.get('type')
        if field_type not in FIELD_TYPES:
            raise ConfigurationError(f"Field '{name}' has unsupported type: {field_type!r}")
        if not data.get('selector'):
            raise ConfigurationError(f"Field '{name}' has no selector")
        test_values = dict(data.get('test_values', {}))
        unknown = set(test_values) - set(VALUE_BUCKETS)
        if unknown:
            raise ConfigurationError(f"Field '{name}' has unknown test value buckets: {sorted(unknown)}")
        conditional = None
        if data.get('conditional'):
            cond = data['conditional']
            try:
                conditional = Conditional(depends_on=cond['depends_on'], show_when=cond['show_when'])
            except KeyError as e:
                raise ConfigurationError(f"Field '{name}' conditional is missing {e}")
        return cls(
            name=name,
            type=field_type,
            selector=data['selector'],
            options=list(data.get('options', [])),
            test_values=test_values,
            required=data.get('required', False),
            conditional=conditional,
        )


@dataclass
class SubmissionScenario:
    name: str
    bucket: Optional[str]
    expect_success: bool = False
    fallback_bucket: Optional[str] = None
    overrides: Dict[str, Any] = field(default_factory=dict)
    expected_errors: List[str] = field(default_factory=list)


@dataclass
class FormConfig:
    name: str
    form_selector: str
    submit_button_selector: str
    page: str = ""
    fields: Dict[str, FormFieldConfig] = field(default_factory=dict)
    expected_errors: Dict[str, List[str]] = field(default_factory=dict)
    success_selectors: List[str] = field(default_factory=list)
    success_texts: List[str] = field(default_factory=list)
    form_code: Optional[str] = None
    timing: Dict[str, Any] = field(default_factory=dict)
    scenarios: Dict[str, SubmissionScenario] = field(default_factory=dict)
    auto_detected: bool = False

    def matches_page(self, url: str) -> bool:
        return bool(self.page) and self.page in url

    @property
    def has_success_indicators(self) -> bool:
        return bool(self.success_selectors or self.success_texts)

    def error_selectors(self) -> List[str]:
        """Every error selector this form may show, in first-seen order."""
        seen: List[str] = []
        for selectors in self.expected_errors.values():
            for sel in selectors:
                if sel not in seen:
                    seen.append(sel)
        for scenario in self.scenarios.values():
            for sel in scenario.expected_errors:
                if sel not in seen:
                    seen.append(sel)
        return seen

    def builtin_scenarios(self) -> List[SubmissionScenario]:
        return [
            SubmissionScenario(name="valid_submission", bucket="valid", expect_success=True),
            SubmissionScenario(
                name="empty_submission",
                bucket="empty",
                expected_errors=list(self.expected_errors.get("empty_submission", [])),
            ),
            SubmissionScenario(
                name="invalid_submission",
                bucket="invalid",
                expected_errors=list(self.expected_errors.get("invalid_submission", [])),
            ),
        ]

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'FormConfig':
        for key in ('form_selector', 'submit_button_selector'):
            if not data.get(key):
                raise ConfigurationError(f"Form config '{name}' is missing '{key}'")
        fields = {
            field_name: FormFieldConfig.from_dict(field_name, field_data)
            for field_name, field_data in data.get('fields', {}).items()
        }
        for f in fields.values():
            if f.conditional and f.conditional.depends_on not in fields:
                raise ConfigurationError(
                    f"Field '{f.name}' depends on unknown field '{f.conditional.depends_on}'"
                )
        expected_errors = {k: list(v) for k, v in data.get('expected_errors', {}).items()}
        scenarios: Dict[str, SubmissionScenario] = {}
        for scenario_name, sdata in data.get('scenarios', {}).items():
            unknown_fields = set(sdata.get('overrides', {})) - set(fields)
            if unknown_fields:
                raise ConfigurationError(
                    f"Scenario '{scenario_name}' overrides unknown fields: {sorted(unknown_fields)}"
                )
            scenarios[scenario_name] = SubmissionScenario(
                name=scenario_name,
                bucket=sdata.get('bucket', 'valid'),
                expect_success=sdata.get('expect_success', False),
                fallback_bucket=sdata.get('fallback_bucket'),
                overrides=dict(sdata.get('overrides', {})),
                expected_errors=list(sdata.get('expected_errors', expected_errors.get(scenario_name, []))),
            )
        success = data.get('success', {})
        tracking = data.get('tracking', {})
        return cls(
            name=name,
            page=data.get('page', ''),
            form_selector=data['form_selector'],
            submit_button_selector=data['submit_button_selector'],
            fields=fields,
            expected_errors=expected_errors,
            success_selectors=list(success.get('selectors', [])),
            success_texts=list(success.get('texts', [])),
            form_code=tracking.get('form_code'),
            timing=dict(data.get('timing', {})),
            scenarios=scenarios,
            auto_detected=data.get('auto_detected', False),
        )
