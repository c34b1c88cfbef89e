"""Quotes blueprint (cotizaciones) - JSON API with single-line maintenance."""
from flask import Blueprint, jsonify, request

from tunik.database import get_session
from tunik.services import quote_service
from tunik.services.payloads import read_quote_payload, read_line_payload
from tunik.utils.parsing import money, normalize_plate

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/quotes')


@quotes_bp.route('', methods=['GET'])
def list_quotes():
    """List quotes. Optional filters: plate, owner_document."""
    db_session = get_session()
    quotes = quote_service.list_quotes(
        db_session,
        plate=normalize_plate(request.args.get('plate')) or None,
        owner_document=request.args.get('owner_document') or None
    )
    return jsonify({'ok': True, 'data': quotes})


@quotes_bp.route('/<id:quote_id>', methods=['GET'])
def get_quote(quote_id):
    db_session = get_session()
    return jsonify({'ok': True, 'data': quote_service.get_quote(quote_id, db_session)})


@quotes_bp.route('', methods=['POST'])
def create_quote():
    db_session = get_session()
    payload = read_quote_payload(request.get_json(silent=True))

    quote = quote_service.create_quote(db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Cotización creada',
        'data': quote_service.get_quote(quote.id, db_session)
    }), 201


@quotes_bp.route('/<id:quote_id>', methods=['PUT', 'PATCH'])
def update_quote(quote_id):
    db_session = get_session()
    payload = read_quote_payload(request.get_json(silent=True))

    quote_service.update_quote(quote_id, db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Cotización actualizada',
        'data': quote_service.get_quote(quote_id, db_session)
    })


@quotes_bp.route('/<id:quote_id>', methods=['DELETE'])
def delete_quote(quote_id):
    db_session = get_session()
    result = quote_service.delete_quote(quote_id, db_session)
    return jsonify({'ok': True, 'msg': 'Cotización eliminada', 'data': result})


# Detail lines

@quotes_bp.route('/<id:quote_id>/lines', methods=['GET'])
def list_lines(quote_id):
    db_session = get_session()
    return jsonify({'ok': True, 'data': quote_service.list_quote_lines(quote_id, db_session)})


@quotes_bp.route('/<id:quote_id>/lines', methods=['POST'])
def add_line(quote_id):
    db_session = get_session()
    payload = read_line_payload(request.get_json(silent=True))
    line = quote_service.add_quote_line(quote_id, db_session, **payload)
    return jsonify({'ok': True, 'msg': 'Detalle agregado', 'data': line}), 201


@quotes_bp.route('/<id:quote_id>/lines/<id:service_id>', methods=['PUT', 'PATCH'])
def update_line(quote_id, service_id):
    db_session = get_session()
    payload = read_line_payload(request.get_json(silent=True))
    line = quote_service.update_quote_line(
        quote_id, service_id, db_session, unit_price=payload.get('unit_price')
    )
    return jsonify({'ok': True, 'msg': 'Detalle actualizado', 'data': line})


@quotes_bp.route('/<id:quote_id>/lines/<id:service_id>', methods=['DELETE'])
def delete_line(quote_id, service_id):
    db_session = get_session()
    quote_service.delete_quote_line(quote_id, service_id, db_session)
    return jsonify({'ok': True, 'msg': 'Detalle eliminado'})


@quotes_bp.route('/<id:quote_id>/total', methods=['GET'])
def quote_total(quote_id):
    db_session = get_session()
    total = quote_service.get_quote_total(quote_id, db_session)
    return jsonify({'ok': True, 'data': {'quote_id': quote_id, 'total': money(total)}})
