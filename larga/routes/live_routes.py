"""
Socket.IO handlers for the live jeepney feed.
"""
from flask import Blueprint, request
from flask_socketio import emit, join_room, leave_room

from larga import socketio
from larga.live_feed import ALL_JEEPNEYS_ROOM, LIVE_NAMESPACE, live_feed, route_room
from larga.utils.validators import normalize_id

live_bp = Blueprint('live', __name__)


def _route_id_from(data):
    if not isinstance(data, dict):
        return None
    return normalize_id(data.get('route_id'))


@socketio.on('connect', namespace=LIVE_NAMESPACE)
def handle_live_connect():
    """Every client receives all jeepney updates plus a snapshot on connect."""
    live_feed.add_client(request.sid)
    join_room(ALL_JEEPNEYS_ROOM)
    emit('connected', {'message': 'Connected to live jeepney feed'})
    emit('snapshot', {'jeepneys': live_feed.snapshot()})


@socketio.on('disconnect', namespace=LIVE_NAMESPACE)
def handle_live_disconnect(reason=None):
    live_feed.remove_client(request.sid)


@socketio.on('subscribe_route', namespace=LIVE_NAMESPACE)
def handle_subscribe_route(data):
    """Join the room of a single route. Payload: ``{route_id}``"""
    route_id = _route_id_from(data)
    if route_id is None:
        emit('error', {'message': 'route_id is required'})
        return
    if not live_feed.subscribe_route(request.sid, route_id):
        emit('error', {'message': 'Client context missing; please reconnect'})
        return
    join_room(route_room(route_id))
    emit('subscribed', {'route_id': route_id, 'jeepneys': live_feed.snapshot(route_id)})


@socketio.on('unsubscribe_route', namespace=LIVE_NAMESPACE)
def handle_unsubscribe_route(data):
    route_id = _route_id_from(data)
    if route_id is None:
        emit('error', {'message': 'route_id is required'})
        return
    live_feed.unsubscribe_route(request.sid, route_id)
    leave_room(route_room(route_id))
    emit('unsubscribed', {'route_id': route_id})
