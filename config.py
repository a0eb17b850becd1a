import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _origins(raw):
    origins = [o.strip() for o in raw.split(',') if o.strip()]
    if origins == ['*']:
        return '*'
    return origins


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    DEBUG = os.environ.get('DEBUG', '0') == '1'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    CORS_ALLOWED_ORIGINS = _origins(os.environ.get('CORS_ALLOWED_ORIGINS', '*'))
    # Client pages and assets (index.html, game.html, js, images)
    STATIC_DIR = os.environ.get('STATIC_DIR') or os.path.join(BASE_DIR, 'static')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Start sequence: countdown emitted from COUNTDOWN_START down to 0
    COUNTDOWN_START = int(os.environ.get('COUNTDOWN_START', '3'))
    COUNTDOWN_TICK_SEC = float(os.environ.get('COUNTDOWN_TICK_SEC', '1.0'))
    # Damage applied per confirmed sword hit
    HIT_DAMAGE = int(os.environ.get('HIT_DAMAGE', '15'))
