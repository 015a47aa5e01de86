import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Extra origin allowed by CORS and Socket.IO (e.g. the deployed frontend)
    FRONTEND_URL = os.environ.get('FRONTEND_URL', '')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Seats per session
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    # The game ends once any player's total reaches this many points
    GAME_END_THRESHOLD = int(os.environ.get('GAME_END_THRESHOLD', '100'))
    # Optional: fixed seed for reproducible shuffles while debugging. Empty disables.
    SHUFFLE_SEED = os.environ.get('SHUFFLE_SEED', '')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
