import os


def _flag(name, default):
    return str(os.environ.get(name, default)).strip() == '1'


def _origins(raw):
    return [o.strip().rstrip('/') for o in raw.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Comma-separated, e.g. "http://localhost:5173,http://127.0.0.1:5173"
    ALLOW_ORIGINS = _origins(os.environ.get('ALLOW_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'))
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')

    # Fairness switches
    FAIR_MODE = _flag('FAIR_MODE', '1')
    RUBBER_BAND = _flag('RUBBER_BAND', '1')
    # Board generation tunables
    FAIR_CANDIDATES = int(os.environ.get('FAIR_CANDIDATES', '220'))
    FAIR_MEAN_LIMIT = float(os.environ.get('FAIR_MEAN_LIMIT', '12'))
    FAIR_SPREAD_LIMIT = float(os.environ.get('FAIR_SPREAD_LIMIT', '90'))
    FAIR_EXTREME_START = int(os.environ.get('FAIR_EXTREME_START', '45'))
    FAIR_MAX_BIAS = int(os.environ.get('FAIR_MAX_BIAS', '6'))
    FAIR_BIAS_STEP = float(os.environ.get('FAIR_BIAS_STEP', '25'))
    # Scorer weights and thresholds
    FAIR_W_STD = float(os.environ.get('FAIR_W_STD', '1.2'))
    FAIR_W_MEAN = float(os.environ.get('FAIR_W_MEAN', '1.2'))
    FAIR_W_SPREAD = float(os.environ.get('FAIR_W_SPREAD', '0.15'))
    FAIR_W_EXTREME = float(os.environ.get('FAIR_W_EXTREME', '1.0'))
    FAIR_W_DOMINANCE = float(os.environ.get('FAIR_W_DOMINANCE', '1.1'))
    FAIR_W_CATASTROPHIC = float(os.environ.get('FAIR_W_CATASTROPHIC', '0.6'))
    FAIR_EXTREME_RATE = float(os.environ.get('FAIR_EXTREME_RATE', '0.6'))
    FAIR_DOMINANCE_TOLERANCE = float(os.environ.get('FAIR_DOMINANCE_TOLERANCE', '5'))
    FAIR_CATASTROPHIC_THRESHOLD = float(os.environ.get('FAIR_CATASTROPHIC_THRESHOLD', '12'))

    # Timers (seconds)
    ROUND_DELAY_SEC = float(os.environ.get('ROUND_DELAY_SEC', '0.7'))
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '60'))
    CREATE_COOLDOWN_SEC = float(os.environ.get('CREATE_COOLDOWN_SEC', '3'))
