from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the matrix game server!'})


@main.route('/api/health')
def health():
    """Reports the listening setup and which fairness features are on."""
    cfg = current_app.config
    return jsonify({
        'ok': True,
        'host': cfg.get('HOST'),
        'port': cfg.get('PORT'),
        'allowOrigins': list(cfg.get('ALLOW_ORIGINS') or []),
        'fairMode': bool(cfg.get('FAIR_MODE')),
        'rubberBand': bool(cfg.get('RUBBER_BAND')),
    })
