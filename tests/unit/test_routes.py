"""
Unit tests for the API boundary (boothcrm/api/routes.py).

Requests go through handle() against a MemoryStore; the tests check status
codes, response shapes, and the error-to-status mapping.
"""

from unittest.mock import patch

import pytest

from boothcrm.api.routes import handle
from boothcrm.errors import StorageError
from boothcrm.models import CONTACTS, SCANS

_FORM = {
    'name': 'Awa', 'surname': 'Ngono', 'email': 'awa@fair.cm', 'phone': '+237 699001122',
    'company': 'Orange Cameroun', 'callback_preference': 'urgent',
}


def _qr(store, name='Booth A'):
    response = handle('POST', '/api/qrcodes', body={'name': name, 'type': 'contact',
                                                    'url': 'https://booth.example.cm/c'}, store=store)
    assert response.status == 201
    return response.body


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

def test_create_contact_201(store):
    response = handle('POST', '/api/contacts', body=_FORM, store=store)
    assert response.status == 201
    assert response.body['success'] is True
    assert response.body['contact']['status'] == 'hot'
    assert response.body['contact']['id']


def test_create_contact_ignores_client_status_and_id(store):
    response = handle('POST', '/api/contacts', body={**_FORM, 'status': 'cold', 'id': 'mine',
                                                     'callback_preference': '48h'}, store=store)
    assert response.body['contact']['status'] == 'warm'
    assert response.body['contact']['id'] != 'mine'


def test_create_contact_missing_field_400(store):
    response = handle('POST', '/api/contacts', body={**_FORM, 'phone': ''}, store=store)
    assert response.status == 400
    assert response.body['field'] == 'phone'
    assert store.snapshot(CONTACTS) == []


def test_non_object_body_400(store):
    response = handle('POST', '/api/contacts', body=['not', 'an', 'object'], store=store)
    assert response.status == 400


def test_list_contacts_paginated(store):
    for i in range(3):
        handle('POST', '/api/contacts', body={**_FORM, 'email': f'v{i}@fair.cm'}, store=store)
    response = handle('GET', '/api/contacts', query={'offset': '1', 'limit': '1', 'status': 'hot'}, store=store)
    assert response.status == 200
    assert response.body['total'] == 3
    assert [c['email'] for c in response.body['items']] == ['v1@fair.cm']


def test_list_contacts_bad_limit_400(store):
    response = handle('GET', '/api/contacts', query={'limit': 'ten'}, store=store)
    assert response.status == 400
    assert response.body['field'] == 'limit'


def test_get_update_delete_contact(store):
    contact_id = handle('POST', '/api/contacts', body=_FORM, store=store).body['contact']['id']

    assert handle('GET', f'/api/contacts/{contact_id}', store=store).body['email'] == 'awa@fair.cm'

    updated = handle('PUT', f'/api/contacts/{contact_id}', body={'status': 'cold'}, store=store)
    assert updated.status == 200
    assert updated.body['contact']['status'] == 'cold'

    assert handle('DELETE', f'/api/contacts/{contact_id}', store=store).status == 200
    assert handle('GET', f'/api/contacts/{contact_id}', store=store).status == 404


def test_unknown_contact_404(store):
    for method in ('GET', 'PUT', 'DELETE'):
        response = handle(method, '/api/contacts/nope', body={'company': 'x'}, store=store)
        assert response.status == 404
        assert 'not found' in response.body['error']


def test_export_is_csv(store):
    handle('POST', '/api/contacts', body=_FORM, store=store)
    response = handle('GET', '/api/contacts/export', store=store)
    assert response.status == 200
    assert response.content_type == 'text/csv'
    assert response.body.startswith('id,name,')


# ---------------------------------------------------------------------------
# QR codes
# ---------------------------------------------------------------------------

def test_scan_and_stats(store):
    qr = _qr(store)
    for converted in (True, False, False):
        response = handle('POST', f"/api/qrcodes/{qr['id']}/scan",
                          body={'user_agent': 'Mozilla/5.0', 'converted': converted}, store=store)
        assert response.status == 201

    stats = handle('GET', f"/api/qrcodes/{qr['id']}/stats", store=store)
    assert stats.body == {'total_scans': 3, 'conversions': 1, 'conversion_rate': 33.33}

    listed = handle('GET', '/api/qrcodes', store=store).body
    assert listed[0]['scan_count'] == 3


@pytest.mark.parametrize('converted', ['false', 'true', 1, 0, None])
def test_scan_converted_must_be_boolean(store, converted):
    qr = _qr(store)
    response = handle('POST', f"/api/qrcodes/{qr['id']}/scan", body={'converted': converted}, store=store)
    assert response.status == 400
    assert response.body['field'] == 'converted'
    assert store.snapshot(SCANS) == []
    assert handle('GET', '/api/qrcodes', store=store).body[0]['scan_count'] == 0


def test_convert_scan(store):
    qr = _qr(store)
    scan = handle('POST', f"/api/qrcodes/{qr['id']}/scan", store=store).body
    response = handle('POST', f"/api/scans/{scan['id']}/convert", store=store)
    assert response.status == 200
    assert response.body['converted'] is True
    assert handle('GET', f"/api/qrcodes/{qr['id']}/stats", store=store).body['conversions'] == 1
    assert handle('POST', '/api/scans/nope/convert', store=store).status == 404


def test_scan_unknown_code_404(store):
    assert handle('POST', '/api/qrcodes/nope/scan', store=store).status == 404
    assert store.snapshot(SCANS) == []


def test_top_route_not_captured_as_id(store):
    _qr(store, 'Booth A')
    response = handle('GET', '/api/qrcodes/top', query={'limit': '3'}, store=store)
    assert response.status == 200
    assert response.body == [{'name': 'Booth A', 'scans': 0}]


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------

def test_signup_then_duplicate_409(store):
    body = {'name': 'Awa', 'email': 'awa@fair.cm', 'phone': '1'}
    first = handle('POST', '/api/loummel/signup', body=body, store=store)
    assert first.status == 201
    assert first.body['promo_code'].startswith('LOUMMEL-')

    second = handle('POST', '/api/loummel/signup', body={**body, 'email': 'AWA@fair.cm'}, store=store)
    assert second.status == 409
    assert second.body['field'] == 'email'
    assert handle('GET', '/api/loummel/signups', store=store).body['total'] == 1


def test_wheel_result_and_stats(store):
    for prize in ('Pen', 'Pen', 'Mug'):
        body = {'name': 'Awa', 'email': 'awa@fair.cm', 'prize': prize}
        assert handle('POST', '/api/wheel/results', body=body, store=store).status == 201
    stats = handle('GET', '/api/wheel/stats', store=store).body
    assert stats == {'total_plays': 3, 'distribution': {'Pen': 2, 'Mug': 1}}


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

def test_dashboard(store):
    handle('POST', '/api/contacts', body=_FORM, store=store)
    body = handle('GET', '/api/dashboard', store=store).body
    assert body['total_contacts'] == 1
    assert body['today_contacts'] == 1
    assert body['hot_leads'] == 1


@pytest.mark.parametrize('kind', ['daily', 'event', 'roi'])
def test_reports(store, kind):
    response = handle('GET', f'/api/reports/{kind}', store=store)
    assert response.status == 200
    assert response.body['type'] == kind


def test_unknown_report_400(store):
    response = handle('GET', '/api/reports/weekly', store=store)
    assert response.status == 400
    assert response.body['field'] == 'type'


# ---------------------------------------------------------------------------
# Errors and routing
# ---------------------------------------------------------------------------

def test_storage_failure_500(store):
    with patch.object(store, 'snapshot', side_effect=StorageError('corrupt snapshot')):
        response = handle('GET', '/api/dashboard', store=store)
    assert response.status == 500
    assert response.body == {'error': 'Server error'}


def test_unknown_route_404(store):
    assert handle('GET', '/api/nothing-here', store=store).status == 404


def test_wrong_method_404(store):
    assert handle('PATCH', '/api/contacts', store=store).status == 404


def test_trailing_slash_and_method_case(store):
    assert handle('get', '/api/contacts/', store=store).status == 200
