from impostor import create_app, socketio
from impostor.services.scheduler import reset_presence, start_room_sweeper

app = create_app()

if __name__ == '__main__':
    reset_presence(app)
    start_room_sweeper(app)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
