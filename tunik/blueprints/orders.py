"""Orders blueprint (pedidos) - JSON API."""
from flask import Blueprint, jsonify, request

from tunik.database import get_session
from tunik.services import order_service
from tunik.services.payloads import read_order_payload
from tunik.utils.parsing import to_positive_int

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['GET'])
def list_orders():
    db_session = get_session()
    supplier_id = to_positive_int(request.args.get('supplier_id'))
    return jsonify({'ok': True, 'data': order_service.list_orders(db_session, supplier_id=supplier_id)})


@orders_bp.route('/<id:order_id>', methods=['GET'])
def get_order(order_id):
    db_session = get_session()
    return jsonify({'ok': True, 'data': order_service.get_order(order_id, db_session)})


@orders_bp.route('', methods=['POST'])
def create_order():
    """Create an order and receive its quantities into stock."""
    db_session = get_session()
    payload = read_order_payload(request.get_json(silent=True))

    order = order_service.create_order(db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Pedido creado y stock actualizado',
        'data': order_service.get_order(order.id, db_session)
    }), 201


@orders_bp.route('/<id:order_id>', methods=['PUT', 'PATCH'])
def update_order(order_id):
    db_session = get_session()
    payload = read_order_payload(request.get_json(silent=True))

    order_service.update_order(order_id, db_session, **payload)

    return jsonify({
        'ok': True,
        'msg': 'Pedido actualizado',
        'data': order_service.get_order(order_id, db_session)
    })


@orders_bp.route('/<id:order_id>', methods=['DELETE'])
def delete_order(order_id):
    db_session = get_session()
    result = order_service.delete_order(order_id, db_session)
    return jsonify({'ok': True, 'msg': 'Pedido eliminado y stock revertido', 'data': result})
