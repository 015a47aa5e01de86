import os

from skyjo import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Socket.IO's own server handles the websocket transport in dev
    socketio.run(
        app,
        host=os.environ.get('HOST', '127.0.0.1'),
        port=int(os.environ.get('PORT', '5000')),
        debug=True,
    )
