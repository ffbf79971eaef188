import pytest
from repairdesk.errors import ValidationError
from repairdesk.models.repair_ticket import TicketPriority
from repairdesk.models.invoice import PaymentMethod
from repairdesk.utils.validation import Payload, coerce_enum


def test_payload_collects_every_error():
    p = Payload({'title': '', 'quantity': 0, 'priority': 'SOON'})
    p.required_str('title')
    p.required_int('quantity', min_value=1)
    p.enum('priority', TicketPriority)
    p.required_int('customer_id')
    with pytest.raises(ValidationError) as exc:
        p.check()
    fields = {e['field'] for e in exc.value.errors}
    assert fields == {'title', 'quantity', 'priority', 'customer_id'}


def test_payload_coerces_numeric_strings_but_not_bools():
    p = Payload({'a': '12', 'b': True, 'c': 3.0})
    assert p.required_int('a') == 12
    assert p.required_int('b') is None
    assert p.required_int('c') == 3
    assert [e['field'] for e in p.errors] == ['b']


def test_nested_items_report_indexed_fields():
    p = Payload({'items': [{'product_id': 1, 'quantity': 2}, {'product_id': 'x'}]})
    for item in p.objects('items', min_items=1):
        item.required_int('product_id')
        item.required_int('quantity', min_value=1)
    fields = [e['field'] for e in p.errors]
    assert fields == ['items[1].product_id', 'items[1].quantity']


def test_empty_list_rejected_when_min_items():
    p = Payload({'items': []})
    assert p.objects('items', min_items=1) == []
    assert p.errors == [{'field': 'items', 'message': 'must contain at least 1 item(s)'}]


def test_non_mapping_body_rejected():
    with pytest.raises(ValidationError):
        Payload(['not', 'an', 'object']).check()


def test_coerce_enum_returns_member():
    assert coerce_enum('HIGH', TicketPriority, 'priority') is TicketPriority.HIGH
    assert coerce_enum(PaymentMethod.CARD, PaymentMethod, 'method') is PaymentMethod.CARD
    with pytest.raises(ValidationError) as exc:
        coerce_enum('LATER', TicketPriority, field_name='priority')
    assert exc.value.errors[0]['field'] == 'priority'


def test_optional_email_blank_is_absent_and_garbage_rejected():
    p = Payload({'a': '', 'b': ' jo@shop.test ', 'c': 'not-an-address'})
    assert p.optional_email('a') is None
    assert p.optional_email('b') == 'jo@shop.test'
    assert p.optional_email('c') is None
    assert p.optional_email('missing') is None
    assert p.errors == [{'field': 'c', 'message': 'must be a valid email address'}]
