"""Appointments blueprint (agenda de citas) - JSON API."""
from flask import Blueprint, jsonify, request

from tunik.database import get_session
from tunik.services import appointment_service
from tunik.services.payloads import read_appointment_payload, read_line_payload
from tunik.utils.parsing import money, normalize_plate

appointments_bp = Blueprint('appointments', __name__, url_prefix='/api/appointments')


@appointments_bp.route('', methods=['GET'])
def list_appointments():
    """List appointments. Optional filters: plate, status, owner_document."""
    db_session = get_session()
    appointments = appointment_service.list_appointments(
        db_session,
        plate=normalize_plate(request.args.get('plate')) or None,
        status=request.args.get('status') or None,
        owner_document=request.args.get('owner_document') or None
    )
    return jsonify({'ok': True, 'data': appointments})


@appointments_bp.route('/<id:appointment_id>', methods=['GET'])
def get_appointment(appointment_id):
    db_session = get_session()
    return jsonify({'ok': True, 'data': appointment_service.get_appointment(appointment_id, db_session)})


@appointments_bp.route('', methods=['POST'])
def create_appointment():
    db_session = get_session()
    payload = read_appointment_payload(request.get_json(silent=True))

    appointment = appointment_service.create_appointment(db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Agenda creada',
        'data': appointment_service.get_appointment(appointment.id, db_session)
    }), 201


@appointments_bp.route('/<id:appointment_id>', methods=['PUT', 'PATCH'])
def update_appointment(appointment_id):
    db_session = get_session()
    payload = read_appointment_payload(request.get_json(silent=True))

    appointment_service.update_appointment(appointment_id, db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Agenda actualizada',
        'data': appointment_service.get_appointment(appointment_id, db_session)
    })


@appointments_bp.route('/<id:appointment_id>', methods=['DELETE'])
def delete_appointment(appointment_id):
    db_session = get_session()
    result = appointment_service.delete_appointment(appointment_id, db_session)
    return jsonify({'ok': True, 'msg': 'Agenda eliminada', 'data': result})


# Detail lines

@appointments_bp.route('/<id:appointment_id>/lines', methods=['GET'])
def list_lines(appointment_id):
    db_session = get_session()
    return jsonify({'ok': True, 'data': appointment_service.list_appointment_lines(appointment_id, db_session)})


@appointments_bp.route('/<id:appointment_id>/lines', methods=['POST'])
def add_line(appointment_id):
    db_session = get_session()
    payload = read_line_payload(request.get_json(silent=True))
    line = appointment_service.add_appointment_line(appointment_id, db_session, **payload)
    return jsonify({'ok': True, 'msg': 'Detalle agregado', 'data': line}), 201


@appointments_bp.route('/<id:appointment_id>/lines/<id:service_id>', methods=['PUT', 'PATCH'])
def update_line(appointment_id, service_id):
    db_session = get_session()
    payload = read_line_payload(request.get_json(silent=True))
    line = appointment_service.update_appointment_line(
        appointment_id, service_id, db_session,
        qty=payload.get('qty'), unit_price=payload.get('unit_price')
    )
    return jsonify({'ok': True, 'msg': 'Detalle actualizado', 'data': line})


@appointments_bp.route('/<id:appointment_id>/lines/<id:service_id>', methods=['DELETE'])
def delete_line(appointment_id, service_id):
    db_session = get_session()
    appointment_service.delete_appointment_line(appointment_id, service_id, db_session)
    return jsonify({'ok': True, 'msg': 'Detalle eliminado'})


@appointments_bp.route('/<id:appointment_id>/total', methods=['GET'])
def appointment_total(appointment_id):
    db_session = get_session()
    total = appointment_service.get_appointment_total(appointment_id, db_session)
    return jsonify({'ok': True, 'data': {'appointment_id': appointment_id, 'total': money(total)}})
