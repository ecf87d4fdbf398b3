"""
Per-object function builders described as data.

Each object type the gateway accepts has a fixed element order and a few
rules (required values, elements written empty when missing, split dates,
line collections). Rather than one class per object, each builder is a
``FunctionTemplate``: the element path to open and an ordered tuple of slots,
where every slot maps one or more keyword parameters onto elements.

    >>> fn = build_function(
    ...     "statistical_account.create",
    ...     control_id="unittest",
    ...     account_no="9000",
    ...     title="hello world",
    ... )
"""

import typing
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Flag, auto

from .base import AbstractFunction
from ..xml.writer import XMLWriter, coerce_date


class SlotFlag(Flag):
    required = auto()
    "A value must be supplied"
    write_null = auto()
    "Written as an empty element when no value is supplied"


class Slot:
    """One keyword parameter written as one element."""

    param: str
    element: str
    flags: set[SlotFlag]
    default: typing.Any
    choices: tuple[typing.Any, ...] | None

    def __init__(
        self,
        param: str,
        element: str,
        *flags: SlotFlag,
        default: typing.Any = None,
        choices: Iterable[typing.Any] | None = None,
    ):
        self.param = param
        self.element = element
        self.flags = set(flags)
        self.default = default
        self.choices = tuple(choices) if choices is not None else None

    @property
    def params(self) -> tuple[str, ...]:
        return (self.param,)

    @property
    def write_null(self) -> bool:
        return SlotFlag.write_null in self.flags

    def revive(self, value: typing.Any) -> typing.Any:
        return value

    def validate(self, value: typing.Any):
        if self.choices is not None and value not in self.choices:
            raise ValueError(
                f"{self.param} must be one of {', '.join(map(str, self.choices))}, got {value!r}"
            )

    def clean(self, values: dict[str, typing.Any], template_key: str):
        value = values.get(self.param)
        if value is None:
            value = self.default
        if value is None:
            if SlotFlag.required in self.flags:
                raise ValueError(
                    f'Required "{self.param}" key not supplied in params for {template_key}'
                )
            values.pop(self.param, None)
            return
        value = self.revive(value)
        self.validate(value)
        values[self.param] = value

    def has_value(self, values: Mapping[str, typing.Any]) -> bool:
        return values.get(self.param) is not None

    def write(self, xml: XMLWriter, values: Mapping[str, typing.Any]):
        xml.write_element(self.element, values.get(self.param), self.write_null)

    def __repr__(self):
        return f"{type(self).__name__}({self.param!r} -> <{self.element}>)"


class TextSlot(Slot):
    def revive(self, value):
        if isinstance(value, bool):
            raise TypeError(f"{self.param} must be text, got bool")
        return value


class NumberSlot(Slot):
    """Numeric values, or strings holding a number, written as given."""

    def revive(self, value):
        if isinstance(value, bool):
            raise TypeError(f"{self.param} must be numeric, got bool")
        if isinstance(value, str):
            try:
                Decimal(value.strip())
            except InvalidOperation:
                raise ValueError(f"{self.param} must be numeric, got {value!r}") from None
            return value.strip()
        if not isinstance(value, (int, float, Decimal)):
            raise TypeError(f"{self.param} must be numeric, got {type(value).__name__}")
        return value


class BoolSlot(Slot):
    def revive(self, value):
        if not isinstance(value, bool):
            raise TypeError(f"{self.param} must be a bool, got {type(value).__name__}")
        return value


class DateSlot(Slot):
    """``mm/dd/YYYY`` formatted date."""

    def revive(self, value) -> date:
        return coerce_date(value)

    def write(self, xml, values):
        xml.write_date(self.element, values.get(self.param), self.write_null)


class SplitDateSlot(DateSlot):
    """Date split into ``<year>``, ``<month>`` and ``<day>`` children."""

    def write(self, xml, values):
        value = values.get(self.param)
        if value is None and not self.write_null:
            return
        xml.write_date_split_elements(self.element, value, self.write_null)


class CustomFieldsSlot(Slot):
    """Legacy ``customfields/customfield`` name and value pairs."""

    def __init__(self, param: str = "custom_fields"):
        super().__init__(param, "customfields")

    def revive(self, value):
        if not isinstance(value, Mapping):
            raise TypeError(f"{self.param} must be a mapping of field name to value")
        return dict(value)

    def write(self, xml, values):
        xml.write_custom_fields(values.get(self.param))


class FlatFieldsSlot(CustomFieldsSlot):
    """Custom fields written directly as elements named after the field."""

    def write(self, xml, values):
        custom_fields = values.get(self.param)
        if custom_fields:
            for field_name, field_value in custom_fields.items():
                xml.write_element(field_name, field_value, True)


class ValueListSlot(Slot):
    """A wrapper element repeating one child element per value."""

    def __init__(self, param: str, element: str, child: str, min_items: int = 0):
        super().__init__(param, element)
        self.child = child
        self.min_items = min_items

    def clean(self, values, template_key):
        items = values.get(self.param)
        if isinstance(items, (str, bytes)) or (
            items is not None and not isinstance(items, Iterable)
        ):
            raise TypeError(f"{self.param} must be a list")
        items = list(items) if items is not None else []
        if len(items) < self.min_items:
            raise ValueError(
                f"{template_key} must have at least {self.min_items} {self.param} item(s)"
            )
        if items:
            values[self.param] = [self.revive_item(item, template_key) for item in items]
        else:
            values.pop(self.param, None)

    def revive_item(self, item, template_key: str):
        return item

    def write(self, xml, values):
        items = values.get(self.param)
        if items:
            xml.write_element_list(self.element, self.child, items)


class LinesSlot(ValueListSlot):
    """A wrapper element holding one line per item, each built from a line template."""

    def __init__(self, param: str, element: str, line_key: str, min_items: int = 1):
        super().__init__(param, element, "", min_items)
        self.line_key = line_key

    def revive_item(self, item, template_key):
        if isinstance(item, TemplateLine):
            if item.template.key != self.line_key:
                raise TypeError(
                    f"{template_key} lines must be {self.line_key}, got {item.template.key}"
                )
            return item
        if isinstance(item, Mapping):
            return build_line(self.line_key, **item)
        raise TypeError(f"{self.param} items must be mappings or {self.line_key} lines")

    def write(self, xml, values):
        lines = values.get(self.param)
        if lines:
            xml.start_element(self.element)
            for line in lines:
                line.write_xml(xml)
            xml.end_element()


class OneOfSlot(Slot):
    """
    Alternatives written in the same position: the first slot holding a value
    is written. When none is set, the first slot's element is written empty.
    """

    def __init__(self, *slots: Slot):
        super().__init__(slots[0].param, slots[0].element)
        self.slots = slots

    @property
    def params(self):
        return tuple(param for slot in self.slots for param in slot.params)

    def clean(self, values, template_key):
        for slot in self.slots:
            slot.clean(values, template_key)

    def has_value(self, values):
        return any(slot.has_value(values) for slot in self.slots)

    def write(self, xml, values):
        for slot in self.slots:
            if slot.has_value(values):
                slot.write(xml, values)
                return
        xml.write_element(self.slots[0].element, None, True)


class ExchangeRateSlot(Slot):
    """
    An explicit ``exchange_rate`` is written as ``<exchrate>``. Otherwise, when
    either ``exchange_rate_date`` or ``exchange_rate_type`` is given, both
    ``<exchratedate>`` and ``<exchratetype>`` are written, empty when missing.
    """

    def __init__(self):
        super().__init__("exchange_rate", "exchrate")
        self.rate = NumberSlot("exchange_rate", "exchrate")
        self.rate_date = SplitDateSlot("exchange_rate_date", "exchratedate", SlotFlag.write_null)
        self.rate_type = TextSlot("exchange_rate_type", "exchratetype", SlotFlag.write_null)

    @property
    def params(self):
        return ("exchange_rate", "exchange_rate_date", "exchange_rate_type")

    def clean(self, values, template_key):
        self.rate.clean(values, template_key)
        self.rate_date.clean(values, template_key)
        self.rate_type.clean(values, template_key)

    def write(self, xml, values):
        if self.rate.has_value(values):
            self.rate.write(xml, values)
        elif self.rate_date.has_value(values) or self.rate_type.has_value(values):
            self.rate_date.write(xml, values)
            self.rate_type.write(xml, values)


class FunctionTemplate(typing.NamedTuple):
    key: str
    path: tuple[str, ...]
    "Elements opened around the slots, outermost first"
    slots: tuple[Slot, ...]

    @property
    def params(self) -> frozenset[str]:
        return frozenset(param for slot in self.slots for param in slot.params)

    def clean(self, params: Mapping[str, typing.Any]) -> dict[str, typing.Any]:
        unexpected = set(params) - self.params
        if unexpected:
            raise TypeError(
                f"{self.key} got unexpected parameter(s): {', '.join(sorted(unexpected))}"
            )
        values = dict(params)
        for slot in self.slots:
            slot.clean(values, self.key)
        return values

    def write(self, xml: XMLWriter, values: Mapping[str, typing.Any]):
        for element in self.path:
            xml.start_element(element)
        for slot in self.slots:
            slot.write(xml, values)
        for _ in self.path:
            xml.end_element()


class _TemplateValues:
    template: FunctionTemplate
    values: dict[str, typing.Any]

    def __init__(self, template: FunctionTemplate, params: Mapping[str, typing.Any]):
        self.template = template
        self.values = template.clean(params)

    def __getitem__(self, param: str):
        if param not in self.template.params:
            raise KeyError(f"Undefined parameter {param} on {self.template.key}")
        return self.values.get(param)

    def __setitem__(self, param: str, value: typing.Any):
        if param not in self.template.params:
            raise KeyError(f"Undefined parameter {param} on {self.template.key}")
        self.values = self.template.clean({**self.values, param: value})


class TemplateFunction(_TemplateValues, AbstractFunction):
    def __init__(
        self,
        template: FunctionTemplate,
        control_id: str | None = None,
        **params: typing.Any,
    ):
        AbstractFunction.__init__(self, control_id)
        _TemplateValues.__init__(self, template, params)

    def write_xml(self, xml: XMLWriter):
        xml.start_element("function")
        xml.write_attribute("controlid", self.control_id)
        self.template.write(xml, self.values)
        xml.end_element()  # function

    def __repr__(self):
        return f"<TemplateFunction {self.template.key} controlid={self.control_id}>"


class TemplateLine(_TemplateValues):
    """A line, entry or item nested inside a template function."""

    def write_xml(self, xml: XMLWriter):
        self.template.write(xml, self.values)

    def __repr__(self):
        return f"<TemplateLine {self.template.key}>"


def _dimension_slots(legacy: bool) -> tuple[Slot, ...]:
    names = ("location", "department", "project", "customer", "vendor", "employee", "item", "class")
    return tuple(
        TextSlot(f"{name}_id", f"{name}id" if legacy else f"{name.upper()}ID") for name in names
    )


def _legacy_adjustment_line(key: str) -> FunctionTemplate:
    return FunctionTemplate(
        key,
        ("lineitem",),
        (
            TextSlot("gl_account_number", "glaccountno", SlotFlag.write_null),
            NumberSlot("transaction_amount", "amount", SlotFlag.write_null),
            TextSlot("memo", "memo"),
            *_dimension_slots(legacy=True),
            CustomFieldsSlot(),
        ),
    )


LINE_TEMPLATES: dict[str, FunctionTemplate] = {
    template.key: template
    for template in (
        _legacy_adjustment_line("ar_adjustment_line"),
        _legacy_adjustment_line("ap_adjustment_line"),
        FunctionTemplate(
            "ee_adjustment_line",
            ("expenseadjustment",),
            (
                OneOfSlot(
                    TextSlot("gl_account_number", "glaccountno"),
                    TextSlot("expense_type", "expensetype"),
                ),
                NumberSlot("reimbursement_amount", "amount", SlotFlag.write_null),
                SplitDateSlot("expense_date", "expensedate"),
                TextSlot("memo", "memo"),
                *_dimension_slots(legacy=True),
                CustomFieldsSlot(),
            ),
        ),
        FunctionTemplate(
            "statistical_journal_entry_line",
            ("GLENTRY",),
            (
                TextSlot("statistical_account_number", "ACCOUNTNO", SlotFlag.write_null),
                Slot("tr_type", "TRTYPE", default=1, choices=(1, -1)),
                NumberSlot("amount", "AMOUNT", SlotFlag.write_null),
                TextSlot("memo", "DESCRIPTION"),
                *_dimension_slots(legacy=False),
                FlatFieldsSlot(),
            ),
        ),
        FunctionTemplate(
            "ar_payment_item",
            ("arpaymentitem",),
            (
                TextSlot("apply_to_record_id", "invoicekey", SlotFlag.write_null),
                NumberSlot("amount_to_apply", "amount", SlotFlag.write_null),
            ),
        ),
        FunctionTemplate(
            "ap_payment_request_item",
            ("paymentrequestitem",),
            (
                TextSlot("apply_to_record_id", "key", SlotFlag.write_null),
                NumberSlot("amount_to_apply", "paymentamount", SlotFlag.write_null),
                NumberSlot("credit_to_apply", "credittoapply"),
                NumberSlot("discount_to_apply", "discounttoapply"),
            ),
        ),
    )
}


def _location_slots(*id_flags: SlotFlag, name_flags: tuple[SlotFlag, ...] = ()):
    return (
        TextSlot("location_id", "LOCATIONID", *id_flags),
        TextSlot("location_name", "NAME", *name_flags),
        TextSlot("parent_location_id", "PARENTID"),
        TextSlot("manager_employee_id", "SUPERVISORID"),
        DateSlot("start_date", "STARTDATE"),
        DateSlot("end_date", "ENDDATE"),
        TextSlot("status", "STATUS", choices=("active", "inactive")),
        FlatFieldsSlot(),
    )


def _statistical_account_slots(*title_flags: SlotFlag):
    return (
        TextSlot("account_no", "ACCOUNTNO", SlotFlag.required),
        TextSlot("title", "TITLE", *title_flags),
        TextSlot("report_type", "ACCOUNTTYPE", choices=("forperiod", "cumulative")),
        TextSlot("category", "CATEGORY"),
        TextSlot("status", "STATUS", choices=("active", "inactive")),
        FlatFieldsSlot(),
    )


def _legacy_adjustment(key: str, function: str, party: str, document: str) -> FunctionTemplate:
    return FunctionTemplate(
        key,
        (function,),
        (
            TextSlot(f"{party}_id", f"{party}id", SlotFlag.required),
            SplitDateSlot("when_created", "datecreated", SlotFlag.required),
            SplitDateSlot("when_posted", "dateposted"),
            TextSlot("batch_key", "batchkey"),
            TextSlot("adjustment_number", "adjustmentno"),
            TextSlot("action", "action", choices=("Draft", "Submit")),
            TextSlot(f"{document}_number", f"{document}no"),
            TextSlot("description", "description"),
            TextSlot("external_id", "externalid"),
            TextSlot("base_currency", "basecurr"),
            TextSlot("transaction_currency", "currency"),
            ExchangeRateSlot(),
            BoolSlot("do_not_post_to_gl", "nogl"),
            CustomFieldsSlot(),
            LinesSlot("lines", function.split("_", 1)[1] + "items", f"{key.split('.')[0]}_line"),
        ),
    )


TEMPLATES: dict[str, FunctionTemplate] = {
    template.key: template
    for template in (
        FunctionTemplate(
            "location.create",
            ("create", "LOCATION"),
            _location_slots(SlotFlag.required, name_flags=(SlotFlag.required,)),
        ),
        FunctionTemplate(
            "location.update",
            ("update", "LOCATION"),
            _location_slots(SlotFlag.required),
        ),
        FunctionTemplate(
            "statistical_account.create",
            ("create", "STATACCOUNT"),
            _statistical_account_slots(SlotFlag.required),
        ),
        FunctionTemplate(
            "statistical_account.update",
            ("update", "STATACCOUNT"),
            _statistical_account_slots(),
        ),
        FunctionTemplate(
            "statistical_journal_entry.create",
            ("create", "GLBATCH"),
            (
                TextSlot("journal_symbol", "JOURNAL", SlotFlag.write_null),
                DateSlot("posting_date", "BATCH_DATE", SlotFlag.write_null),
                DateSlot("reverse_date", "REVERSEDATE"),
                TextSlot("description", "BATCH_TITLE", SlotFlag.write_null),
                TextSlot("history_comment", "HISTORY_COMMENT"),
                TextSlot("reference_number", "REFERENCENO"),
                TextSlot("attachments_id", "SUPDOCID"),
                TextSlot("action", "STATE", choices=("Draft", "Pending", "Posted")),
                FlatFieldsSlot(),
                LinesSlot("lines", "ENTRIES", "statistical_journal_entry_line"),
            ),
        ),
        _legacy_adjustment("ar_adjustment.create", "create_aradjustment", "customer", "invoice"),
        _legacy_adjustment("ap_adjustment.create", "create_apadjustment", "vendor", "bill"),
        FunctionTemplate(
            "ee_adjustment.create",
            ("create_expenseadjustmentreport",),
            (
                TextSlot("employee_id", "employeeid", SlotFlag.required),
                SplitDateSlot("when_created", "datecreated", SlotFlag.required),
                SplitDateSlot("when_posted", "dateposted"),
                TextSlot("batch_key", "batchkey"),
                TextSlot("adjustment_number", "adjustmentno"),
                TextSlot("expense_report_number", "docnumber"),
                TextSlot("description", "description"),
                TextSlot("base_currency", "basecurr"),
                TextSlot("reimbursement_currency", "currency"),
                CustomFieldsSlot(),
                LinesSlot("lines", "expenseadjustments", "ee_adjustment_line"),
                TextSlot("attachments_id", "supdocid"),
            ),
        ),
        FunctionTemplate(
            "cm_deposit.create",
            ("record_deposit",),
            (
                TextSlot("bank_account_id", "bankaccountid", SlotFlag.required),
                SplitDateSlot("deposit_date", "depositdate", SlotFlag.required),
                TextSlot("deposit_slip_id", "depositid", SlotFlag.required),
                ValueListSlot("receipt_keys", "receiptkeys", "receiptkey", min_items=1),
                TextSlot("description", "description"),
                TextSlot("attachments_id", "supdocid"),
                CustomFieldsSlot(),
            ),
        ),
    )
}


def _lookup(registry: Mapping[str, FunctionTemplate], key: str, kind: str) -> FunctionTemplate:
    try:
        return registry[key]
    except KeyError:
        raise KeyError(
            f"Unknown {kind} template {key!r}, expected one of {', '.join(sorted(registry))}"
        ) from None


def build_function(key: str, control_id: str | None = None, **params) -> TemplateFunction:
    return TemplateFunction(_lookup(TEMPLATES, key, "function"), control_id, **params)


def build_line(key: str, **params) -> TemplateLine:
    return TemplateLine(_lookup(LINE_TEMPLATES, key, "line"), params)
