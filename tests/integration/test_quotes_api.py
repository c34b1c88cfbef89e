"""
Integration tests for the quotes API.
"""


def _create_appointment(client, plate, service_id, price):
    response = client.post('/api/appointments', json={
        'placa': plate,
        'fecha': '2025-03-01T10:30:00',
        'servicios': [{'idservicios': service_id, 'precio_unitario': price}]
    })
    assert response.status_code == 201
    return response.get_json()['data']['id']


def test_create_quote_from_appointment_merges_lines(client, vehicle, payment_method, service, service2):
    appointment_id = _create_appointment(client, 'abc 123', service.id, 10)

    response = client.post('/api/quotes', json={
        'idagendacitas': appointment_id,
        'idmpago': payment_method.id,
        'detalles': [{'idservicios': service.id, 'preciochange': 99}, {'idservicios': service2.id}]
    })

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['plate'] == 'ABC123'
    assert data['appointment_id'] == appointment_id
    assert {line['service_id']: line['unit_price'] for line in data['lines']} == {
        service.id: 99.0, service2.id: 50.0
    }
    assert data['total'] == 149.0


def test_create_quote_plate_conflict(client, vehicle, other_vehicle, payment_method, service):
    appointment_id = _create_appointment(client, vehicle.plate, service.id, 10)

    response = client.post('/api/quotes', json={
        'idagendacitas': appointment_id, 'placa': other_vehicle.plate, 'idmpago': payment_method.id
    })

    assert response.status_code == 409
    assert response.get_json()['error'] == 'Conflict'


def test_create_quote_missing_appointment(client, vehicle, payment_method):
    response = client.post('/api/quotes', json={
        'idagendacitas': 999, 'placa': vehicle.plate, 'idmpago': payment_method.id
    })

    assert response.status_code == 404


def test_quote_line_endpoints(client, vehicle, payment_method, service, service2):
    created = client.post('/api/quotes', json={
        'placa': vehicle.plate, 'idmpago': payment_method.id, 'items': [{'idservicios': service.id}]
    }).get_json()
    quote_id = created['data']['id']

    response = client.post(f'/api/quotes/{quote_id}/lines', json={'idservicios': service2.id, 'preciochange': 30})
    assert response.status_code == 201

    response = client.post(f'/api/quotes/{quote_id}/lines', json={'idservicios': service2.id})
    assert response.status_code == 409

    response = client.put(f'/api/quotes/{quote_id}/lines/{service.id}', json={'preciochange': 70})
    assert response.status_code == 200
    assert response.get_json()['data']['unit_price'] == 70.0

    response = client.get(f'/api/quotes/{quote_id}/total')
    assert response.get_json()['data']['total'] == 100.0

    response = client.delete(f'/api/quotes/{quote_id}/lines/{service2.id}')
    assert response.status_code == 200

    response = client.get(f'/api/quotes/{quote_id}/lines')
    assert [line['service_id'] for line in response.get_json()['data']] == [service.id]

    response = client.delete(f'/api/quotes/{quote_id}/lines/{service2.id}')
    assert response.status_code == 404


def test_update_and_delete_quote(client, vehicle, payment_method, service, service2):
    created = client.post('/api/quotes', json={
        'placa': vehicle.plate, 'idmpago': payment_method.id, 'items': [{'idservicios': service.id}]
    }).get_json()
    quote_id = created['data']['id']

    response = client.put(f'/api/quotes/{quote_id}', json={
        'estado': 'APROBADO', 'servicios': [{'idservicios': service2.id}]
    })
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'Aprobado'
    assert data['total'] == 50.0

    response = client.put(f'/api/quotes/{quote_id}', json={'estado': 'Enviado'})
    assert response.status_code == 400

    response = client.delete(f'/api/quotes/{quote_id}')
    assert response.status_code == 200
    assert client.get(f'/api/quotes/{quote_id}').status_code == 404


def test_list_quotes_by_owner(client, vehicle, other_vehicle, payment_method):
    client.post('/api/quotes', json={'placa': vehicle.plate, 'idmpago': payment_method.id})
    client.post('/api/quotes', json={'placa': other_vehicle.plate, 'idmpago': payment_method.id})

    response = client.get('/api/quotes?owner_document=11122233')

    data = response.get_json()['data']
    assert [q['plate'] for q in data] == ['XYZ789']
    assert data[0]['total'] == 0.0


def test_quote_line_price_must_not_be_negative(client, vehicle, payment_method, service, service2):
    created = client.post('/api/quotes', json={
        'placa': vehicle.plate, 'idmpago': payment_method.id, 'items': [{'idservicios': service.id}]
    }).get_json()
    quote_id = created['data']['id']

    response = client.post(f'/api/quotes/{quote_id}/lines', json={'idservicios': service2.id, 'preciochange': -30})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'ValidationError'

    response = client.put(f'/api/quotes/{quote_id}/lines/{service.id}', json={'preciochange': '-1'})
    assert response.status_code == 400

    response = client.get(f'/api/quotes/{quote_id}/total')
    assert response.get_json()['data']['total'] == 100.0
