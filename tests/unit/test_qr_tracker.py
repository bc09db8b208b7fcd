"""
Unit tests for QR codes, scans and the scan aggregator
(boothcrm/engine/qr_tracker.py).

The key property: a code's scan_count always equals the number of Scan
records pointing at it, including when the counter write fails.
"""

from unittest.mock import patch

import pytest

from boothcrm.bus.events import EVENT_QR_CODE_CREATED, EVENT_SCAN_CONVERTED, EVENT_SCAN_RECORDED
from boothcrm.engine import qr_tracker
from boothcrm.errors import NotFoundError, StorageError, ValidationError
from boothcrm.models import QR_CODES, SCANS, QRCode


def _qr(store, name='Booth A', **overrides):
    values = dict(name=name, type='contact', url='https://booth.example.cm/contact')
    values.update(overrides)
    return qr_tracker.create_qr_code(QRCode(**values), store=store)


# ---------------------------------------------------------------------------
# create_qr_code
# ---------------------------------------------------------------------------

def test_create_starts_counter_at_zero(store, emitted):
    qr = _qr(store, scan_count=99)
    assert qr.scan_count == 0
    assert qr.active is True
    assert qr.created_at is not None
    assert emitted.call_args[0][0] == EVENT_QR_CODE_CREATED


@pytest.mark.parametrize('field,value', [('name', ''), ('url', '  ')])
def test_create_requires_name_and_url(store, field, value):
    with pytest.raises(ValidationError) as exc_info:
        _qr(store, **{field: value})
    assert exc_info.value.field == field
    assert store.snapshot(QR_CODES) == []


def test_create_rejects_unknown_type(store):
    with pytest.raises(ValidationError) as exc_info:
        _qr(store, type='billboard')
    assert exc_info.value.field == 'type'


def test_create_rejects_non_http_url(store):
    with pytest.raises(ValidationError):
        _qr(store, url='ftp://booth.example.cm')


def test_list_qr_codes_filters_active(store):
    _qr(store, 'Booth A')
    _qr(store, 'Flyer', active=False)
    assert [q.name for q in qr_tracker.list_qr_codes(store=store)] == ['Booth A', 'Flyer']
    assert [q.name for q in qr_tracker.list_qr_codes(active=True, store=store)] == ['Booth A']
    assert [q.name for q in qr_tracker.list_qr_codes(active=False, store=store)] == ['Flyer']


# ---------------------------------------------------------------------------
# record_scan
# ---------------------------------------------------------------------------

def test_scan_increments_counter(store, emitted):
    qr = _qr(store)
    scan = qr_tracker.record_scan(qr.id, user_agent='Mozilla/5.0', ip_address='10.0.0.7', store=store)
    assert scan.qr_code_id == qr.id
    assert scan.converted is False
    assert scan.scanned_at is not None
    assert qr_tracker.get_qr_code(qr.id, store=store).scan_count == 1
    emitted.assert_called_with(EVENT_SCAN_RECORDED, {'scan_id': scan.id, 'qr_code_id': qr.id})


def test_counter_matches_scan_log(store):
    a = _qr(store, 'Booth A')
    b = _qr(store, 'Flyer')
    for _ in range(4):
        qr_tracker.record_scan(a.id, store=store)
    qr_tracker.record_scan(b.id, store=store)

    for qr in qr_tracker.list_qr_codes(store=store):
        assert qr.scan_count == len(qr_tracker.list_scans(qr.id, store=store))
    assert len(store.snapshot(SCANS)) == 5


def test_scan_unknown_code(store):
    with pytest.raises(NotFoundError):
        qr_tracker.record_scan('missing', store=store)
    assert store.snapshot(SCANS) == []


def test_scan_inactive_code_rejected(store):
    qr = _qr(store, active=False)
    with pytest.raises(ValidationError):
        qr_tracker.record_scan(qr.id, store=store)
    assert store.snapshot(SCANS) == []
    assert qr_tracker.get_qr_code(qr.id, store=store).scan_count == 0


def test_failed_counter_update_removes_scan(store, emitted):
    qr = _qr(store)
    emitted.reset_mock()
    with patch.object(store, 'update', side_effect=StorageError('disk full')):
        with pytest.raises(StorageError):
            qr_tracker.record_scan(qr.id, store=store)
    assert store.snapshot(SCANS) == []
    assert qr_tracker.get_qr_code(qr.id, store=store).scan_count == 0
    emitted.assert_not_called()


def test_mark_scan_converted(store, emitted):
    qr = _qr(store)
    scan = qr_tracker.record_scan(qr.id, store=store)
    converted = qr_tracker.mark_scan_converted(scan.id, store=store)
    assert converted.converted is True
    assert qr_tracker.stats_for(qr.id, store=store)['conversions'] == 1
    emitted.assert_called_with(EVENT_SCAN_CONVERTED, {'scan_id': scan.id, 'qr_code_id': qr.id})


def test_mark_unknown_scan_converted(store):
    with pytest.raises(NotFoundError):
        qr_tracker.mark_scan_converted('missing', store=store)


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

def test_stats_for_booth_scenario(store):
    qr = _qr(store)
    for converted in (True, False, False):
        qr_tracker.record_scan(qr.id, converted=converted, store=store)
    assert qr_tracker.stats_for(qr.id, store=store) == {
        'total_scans': 3,
        'conversions': 1,
        'conversion_rate': 33.33,
    }


def test_stats_for_unscanned_code(store):
    qr = _qr(store)
    assert qr_tracker.stats_for(qr.id, store=store) == {
        'total_scans': 0, 'conversions': 0, 'conversion_rate': 0,
    }


def test_stats_for_unknown_code(store):
    with pytest.raises(NotFoundError):
        qr_tracker.stats_for('missing', store=store)


@pytest.mark.parametrize('conversions,total,expected', [
    (0, 0, 0), (5, 0, 0), (1, 3, 33.33), (2, 3, 66.67), (3, 3, 100.0), (1, 8, 12.5),
])
def test_conversion_rate(conversions, total, expected):
    assert qr_tracker.conversion_rate(conversions, total) == expected


def test_conversion_rate_within_bounds():
    for total in range(1, 30):
        for conversions in range(total + 1):
            assert 0 <= qr_tracker.conversion_rate(conversions, total) <= 100


def test_top_qr_codes_ranked_by_scans(store):
    names = ['A', 'B', 'C']
    codes = [_qr(store, n) for n in names]
    for qr, scans in zip(codes, (1, 3, 2)):
        for _ in range(scans):
            qr_tracker.record_scan(qr.id, store=store)
    assert qr_tracker.top_qr_codes(store=store) == [
        {'name': 'B', 'scans': 3}, {'name': 'C', 'scans': 2}, {'name': 'A', 'scans': 1},
    ]


def test_top_qr_codes_ties_keep_creation_order():
    ranked = qr_tracker.rank_qr_codes(
        [{'name': 'first', 'scan_count': 2}, {'name': 'second', 'scan_count': 2},
         {'name': 'third', 'scan_count': 5}],
        limit=5,
    )
    assert [r['name'] for r in ranked] == ['third', 'first', 'second']


def test_top_qr_codes_respects_limit(store):
    for i in range(8):
        _qr(store, f'Code {i}')
    assert len(qr_tracker.top_qr_codes(store=store)) == 5
    assert len(qr_tracker.top_qr_codes(limit=2, store=store)) == 2
    assert qr_tracker.top_qr_codes(limit=0, store=store) == []
