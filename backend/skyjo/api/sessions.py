from flask import Blueprint, jsonify
from skyjo import sessions
from skyjo.game import SessionNotFound

sessions_api = Blueprint('sessions', __name__)


@sessions_api.route('/', methods=['GET'])
def list_sessions():
    """
    Returns a summary of every game currently running.
    """
    summary = []
    for session in sessions.active():
        summary.append({
            'sessionId': session.session_id,
            'round': session.round,
            'phase': session.phase.value,
            'playerCount': len(session.players),
        })
    return jsonify(summary), 200


@sessions_api.route('/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    """
    Returns the same redacted view that is broadcast to the players.
    """
    try:
        session = sessions.get(session_id)
    except SessionNotFound as exc:
        return jsonify({'error': str(exc)}), 404
    # game state only changes under the broker lock
    with session.broker.lock:
        view = session.redacted_view()
    return jsonify(view), 200
