from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from carhire.core.errors import UpstreamError
from carhire.db.models import AuditLog, Booking
from carhire.services.bookings import confirm_booking, delete_booking, set_booking_status


@pytest.fixture(autouse=True)
def service_locations(make_location):
    make_location('Nadi Airport')
    make_location('Denarau Marina', fee_fjd=25)
    make_location('Suva Office', fee_fjd=40, is_active=False)


def _future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def _payload(vehicle_id, **overrides):
    payload = {
        'vehicle_id': vehicle_id,
        'start_date': _future(10),
        'end_date': _future(12),
        'pickup_location': 'Nadi Airport',
        'dropoff_location': 'Denarau Marina',
        'customer_name': 'Mere Tui',
        'contact_number': '+679 555 0101',
        'email': 'mere@test.com',
        'pickup_time': '10:00',
        'dropoff_time': '16:00',
        'flight_number': 'fj 910!',
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------
# Create
# ---------------------------------------------------------------

def test_create_booking_stores_pending(client, db, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/bookings/create', json=_payload(car.id))
    assert res.status_code == 201
    body = res.json()
    assert body['status'] == 'PENDING'
    assert body['code'].startswith('BK-')

    stored = db.get(Booking, body['id'])
    assert stored.status == 'pending'
    assert stored.flight_number == 'FJ 910'
    assert db.query(AuditLog).filter(AuditLog.action == 'booking.created').count() == 1


def test_create_booking_missing_fields_is_400(client, make_vehicle):
    car = make_vehicle()
    payload = _payload(car.id)
    del payload['customer_name']

    res = client.post('/api/bookings/create', json=payload)
    assert res.status_code == 400


def test_create_booking_rejects_reversed_dates(client, make_vehicle):
    car = make_vehicle()
    res = client.post('/api/bookings/create', json=_payload(car.id, start_date=_future(5), end_date=_future(4)))
    assert res.status_code == 400


def test_create_booking_rejects_same_day_dropoff_before_pickup(client, make_vehicle):
    car = make_vehicle()
    res = client.post(
        '/api/bookings/create',
        json=_payload(car.id, start_date=_future(5), end_date=_future(5), pickup_time='15:00', dropoff_time='11:00'),
    )
    assert res.status_code == 400


def test_create_booking_unknown_vehicle_is_400(client):
    res = client.post('/api/bookings/create', json=_payload('nope'))
    assert res.status_code == 400
    assert res.json()['detail'] == 'Vehicle not found.'


def test_create_booking_over_confirmed_dates_is_409(client, make_vehicle, make_booking):
    car = make_vehicle()
    make_booking(car, _future(12), _future(14))

    res = client.post('/api/bookings/create', json=_payload(car.id))
    assert res.status_code == 409
    assert 'just became unavailable' in res.json()['detail']


def test_create_booking_over_recent_pending_is_409(client, make_vehicle, make_booking):
    car = make_vehicle()
    make_booking(car, _future(11), _future(11), status='pending')

    res = client.post('/api/bookings/create', json=_payload(car.id))
    assert res.status_code == 409


def test_create_booking_over_stale_pending_is_allowed(client, make_vehicle, make_booking):
    car = make_vehicle()
    make_booking(car, _future(11), _future(11), status='pending',
                 created_at=datetime.now(timezone.utc) - timedelta(hours=72))

    res = client.post('/api/bookings/create', json=_payload(car.id))
    assert res.status_code == 201


def test_create_booking_is_rate_limited(client, make_vehicle):
    car = make_vehicle()
    codes = [
        client.post('/api/bookings/create', json=_payload(car.id, start_date=_future(20 + i * 3), end_date=_future(20 + i * 3))).status_code
        for i in range(6)
    ]
    assert codes[:5] == [201] * 5
    assert codes[5] == 429



def test_create_booking_adds_location_fees(client, db, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/bookings/create', json=_payload(car.id, total_price='100'))
    assert res.status_code == 201
    body = res.json()
    assert Decimal(body['pickup_fee_fjd']) == 0
    assert Decimal(body['dropoff_fee_fjd']) == Decimal('25')
    assert Decimal(body['total_price']) == Decimal('125')

    stored = db.get(Booking, body['id'])
    assert stored.total_price == Decimal('125')


def test_create_booking_without_total_charges_fees_only(client, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/bookings/create', json=_payload(car.id))
    assert res.status_code == 201
    assert Decimal(res.json()['total_price']) == Decimal('25')


def test_create_booking_stores_canonical_location_names(client, db, make_vehicle):
    car = make_vehicle()

    res = client.post(
        '/api/bookings/create',
        json=_payload(car.id, pickup_location=' nadi airport ', dropoff_location='DENARAU MARINA'),
    )
    assert res.status_code == 201

    stored = db.get(Booking, res.json()['id'])
    assert stored.pickup_location == 'Nadi Airport'
    assert stored.dropoff_location == 'Denarau Marina'


def test_create_booking_unknown_location_is_400(client, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/bookings/create', json=_payload(car.id, pickup_location='Lautoka'))
    assert res.status_code == 400
    assert res.json()['detail'] == (
        'Pickup location not allowed: "Lautoka". Please choose one of the active service locations.'
    )


def test_create_booking_inactive_location_is_400(client, db, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/bookings/create', json=_payload(car.id, dropoff_location='Suva Office'))
    assert res.status_code == 400
    assert res.json()['detail'].startswith('Drop-off location not allowed')
    assert db.query(Booking).count() == 0

# ---------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------

def test_confirm_requires_admin(client, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10', status='pending')

    res = client.post('/api/bookings/confirm', json={'id': booking.id})
    assert res.status_code == 401


def test_confirm_pending_booking(client, db, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10', status='PENDING')

    res = client.post('/api/bookings/confirm', json={'id': booking.id}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()['ok'] is True
    assert res.json()['booking']['status'] == 'confirmed'

    db.expire_all()
    assert db.get(Booking, booking.id).status == 'confirmed'


def test_confirm_by_code(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10', status='pending')

    res = client.post('/api/bookings/confirm', json={'code': booking.code}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()['booking']['id'] == booking.id


def test_confirm_is_idempotent(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10', status='CONFIRMED')

    res = client.post('/api/bookings/confirm', json={'id': booking.id}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()['message'] == 'Already confirmed.'
    assert res.json()['booking']['status'] == 'CONFIRMED'


def test_confirm_same_day_handoff_conflicts(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    first = make_booking(car, '2024-05-01', '2024-05-10', status='pending')
    second = make_booking(car, '2024-05-10', '2024-05-15', status='pending')

    res = client.post('/api/bookings/confirm', json={'id': first.id}, headers=admin_headers)
    assert res.status_code == 200

    res = client.post('/api/bookings/confirm', json={'id': second.id}, headers=admin_headers)
    assert res.status_code == 409
    assert res.json()['detail'] == 'Cannot confirm: dates overlap an existing confirmed booking.'


def test_confirm_ignores_other_vehicles(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    other = make_vehicle(title='Other')
    make_booking(other, '2024-05-01', '2024-05-10')
    booking = make_booking(car, '2024-05-05', '2024-05-08', status='pending')

    res = client.post('/api/bookings/confirm', json={'id': booking.id}, headers=admin_headers)
    assert res.status_code == 200


def test_confirm_unknown_booking_is_404(client, admin_headers):
    res = client.post('/api/bookings/confirm', json={'id': 'missing'}, headers=admin_headers)
    assert res.status_code == 404
    assert res.json()['detail'] == 'Booking not found.'


def test_confirm_without_id_or_code_is_400(client, admin_headers):
    res = client.post('/api/bookings/confirm', json={}, headers=admin_headers)
    assert res.status_code == 400


def test_confirm_commit_failure_is_upstream_error(db, make_vehicle, make_booking, monkeypatch):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10', status='pending')

    def _fail():
        raise OperationalError('update', {}, Exception('database is locked'))

    monkeypatch.setattr(db, 'commit', _fail)

    with pytest.raises(UpstreamError):
        confirm_booking(db, booking_id=booking.id)


# ---------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------

def test_admin_list_includes_vehicle(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle(title='Suzuki Swift', registration_number='KX 901')
    make_booking(car, '2024-05-01', '2024-05-10')

    res = client.get('/api/admin/bookings/list', headers=admin_headers)
    assert res.status_code == 200
    rows = res.json()
    assert len(rows) == 1
    assert rows[0]['vehicle_title'] == 'Suzuki Swift'
    assert rows[0]['registration_number'] == 'KX 901'


def test_admin_cancel_frees_dates(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, _future(3), _future(5))

    res = client.post('/api/admin/bookings/status', json={'id': booking.id, 'status': 'cancelled'}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()['status'] == 'cancelled'

    res = client.get(f'/api/availability/{car.id}')
    assert res.json() == {'ranges': []}


def test_admin_delete(client, db, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking_id = make_booking(car, '2024-05-01', '2024-05-10').id

    res = client.post('/api/admin/bookings/delete', json={'id': booking_id}, headers=admin_headers)
    assert res.status_code == 200

    db.expire_all()
    assert db.get(Booking, booking_id) is None

    res = client.post('/api/admin/bookings/delete', json={'id': booking_id}, headers=admin_headers)
    assert res.status_code == 404


def test_admin_create_is_confirmed(client, db, admin_headers, make_vehicle):
    car = make_vehicle()

    res = client.post('/api/admin/bookings/create', json=_payload(car.id), headers=admin_headers)
    assert res.status_code == 201
    body = res.json()
    assert body['status'] == 'confirmed'
    assert body['dropoff_location'] == 'Denarau Marina'
    assert Decimal(body['total_price']) == Decimal('25')

    res = client.get(f'/api/availability/{car.id}')
    assert res.json() == {'ranges': [{'start': _future(10), 'end': _future(12)}]}


def test_admin_create_over_confirmed_is_409(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    make_booking(car, _future(12), _future(14))

    res = client.post('/api/admin/bookings/create', json=_payload(car.id), headers=admin_headers)
    assert res.status_code == 409
    assert res.json()['detail'] == 'Cannot confirm: dates overlap an existing confirmed booking.'


def test_admin_create_ignores_pending_holds(client, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    make_booking(car, _future(11), _future(11), status='pending')

    res = client.post('/api/admin/bookings/create', json=_payload(car.id), headers=admin_headers)
    assert res.status_code == 201


def test_admin_create_requires_admin(client, make_vehicle):
    car = make_vehicle()
    res = client.post('/api/admin/bookings/create', json=_payload(car.id))
    assert res.status_code == 401


# ---------------------------------------------------------------
# Payment
# ---------------------------------------------------------------

def test_mark_paid_full_records_total(client, db, admin_headers, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, _future(3), _future(5), status='pending', total_price=Decimal('180.00'))

    res = client.post('/api/admin/bookings/mark-paid-full', json={'id': booking.id}, headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body['ok'] is True
    assert body['booking']['payment_status'] == 'paid_in_full'
    assert Decimal(body['booking']['amount_paid']) == Decimal('180')
    assert body['booking']['status'] == 'pending'

    assert db.query(AuditLog).filter(AuditLog.action == 'booking.paid_in_full').count() == 1


def test_mark_paid_full_unknown_booking_is_404(client, admin_headers):
    res = client.post('/api/admin/bookings/mark-paid-full', json={'id': 'missing'}, headers=admin_headers)
    assert res.status_code == 404
    assert res.json()['detail'] == 'Booking not found.'


def test_mark_paid_full_requires_admin(client, make_vehicle, make_booking):
    car = make_vehicle()
    booking = make_booking(car, _future(3), _future(5))

    res = client.post('/api/admin/bookings/mark-paid-full', json={'id': booking.id})
    assert res.status_code == 401


# ---------------------------------------------------------------
# Commit failures
# ---------------------------------------------------------------

def _failing_commit():
    raise OperationalError('update', {}, Exception('database is locked'))


def test_status_commit_failure_is_upstream_error(db, make_vehicle, make_booking, monkeypatch):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10')

    monkeypatch.setattr(db, 'commit', _failing_commit)

    with pytest.raises(UpstreamError) as exc:
        set_booking_status(db, booking.id, 'cancelled')
    assert str(exc.value) == 'Failed to update booking status.'


def test_delete_commit_failure_is_upstream_error(db, make_vehicle, make_booking, monkeypatch):
    car = make_vehicle()
    booking = make_booking(car, '2024-05-01', '2024-05-10')

    monkeypatch.setattr(db, 'commit', _failing_commit)

    with pytest.raises(UpstreamError) as exc:
        delete_booking(db, booking.id)
    assert str(exc.value) == 'Failed to delete booking.'
