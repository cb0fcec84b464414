import json
import random

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def build_coordinator(flask_app, broadcaster):
    from matrixgame.services.games import (
        BackgroundScheduler,
        BoardGenerator,
        FairnessSettings,
        GameCoordinator,
        ManualScheduler,
        RoomRegistry,
    )

    cfg = flask_app.config
    if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
        scheduler = ManualScheduler(logger=flask_app.logger)
    else:
        scheduler = BackgroundScheduler(socketio, logger=flask_app.logger)
    registry = RoomRegistry(cooldown_sec=float(cfg.get('CREATE_COOLDOWN_SEC', 3)), clock=scheduler.now)
    generator = BoardGenerator(FairnessSettings.from_config(cfg))
    return GameCoordinator(
        registry,
        generator,
        scheduler,
        broadcaster,
        round_delay=float(cfg.get('ROUND_DELAY_SEC', 0.7)),
        grace_period=float(cfg.get('DISCONNECT_GRACE_SEC', 60)),
        logger=flask_app.logger,
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = list(flask_app.config.get('ALLOW_ORIGINS') or [])
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from matrixgame.socketio_events import SocketIOBroadcaster, register_socketio_handlers
    coordinator = build_coordinator(flask_app, SocketIOBroadcaster(socketio, namespace))
    flask_app.extensions['matrixgame'] = coordinator
    register_socketio_handlers(namespace=namespace)

    from matrixgame.main import main
    flask_app.register_blueprint(main)

    from matrixgame.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    @click.command('sample-board')
    @click.option('--diff', default=0, type=int, help='Score differential (A minus B) to rubber-band against.')
    @click.option('--seed', default=None, type=int, help='Seed for a reproducible board.')
    def sample_board_command(diff, seed):
        """Generates one board and prints its fairness breakdown."""
        from matrixgame.services.games import BoardGenerator, FairnessSettings, role_biases, score_board

        settings = FairnessSettings.from_config(flask_app.config)
        generator = BoardGenerator(settings, rng=random.Random(seed))
        scores = {'A': diff, 'B': 0}
        board = generator.generate(scores)
        bias_a, bias_b = role_biases(scores, settings)
        click.echo(json.dumps({
            'fairMode': settings.enabled,
            'rubberBand': settings.rubber_band,
            'bias': {'A': bias_a, 'B': bias_b},
            'board': board,
            'fairness': score_board(board, settings).to_dict(),
        }, indent=2))

    flask_app.cli.add_command(sample_board_command)

    return flask_app
