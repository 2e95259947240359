"""Flask web application for trigger activation, statistics and stored images."""

import os
from typing import Optional

from flask import Flask, jsonify, send_file

from ..logging_config import get_logger
from ..services.local_storage import LocalStorage, Locations
from ..trigger_manager import TriggerManager

logger = get_logger("web")


class TriggerWebApp:
    """HTTP endpoints for activating triggers and reading or resetting statistics."""

    def __init__(self, manager: TriggerManager, storage: Optional[LocalStorage] = None):
        self.app = Flask(__name__)
        self.manager = manager
        self.storage = storage if storage is not None else manager.storage

        self._setup_routes()

        logger.info("Web application initialized")

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/motion/<trigger_name>')
        def motion(trigger_name):
            """Activate a trigger using its snapshot URI."""
            logger.info(f"Received motion event for {trigger_name}")

            if self.manager.find_by_name(trigger_name) is None:
                return jsonify({
                    'success': False,
                    'error': f'Unknown trigger {trigger_name}'
                }), 404

            result = self.manager.activate(trigger_name)
            return jsonify({
                'success': result is not None,
                'trigger': trigger_name,
                'result': result.value if result else None
            })

        @self.app.route('/statistics')
        def overall_statistics():
            logger.debug("Received overall statistics request.")
            return jsonify(self.manager.get_overall_statistics().to_json())

        @self.app.route('/statistics/reset')
        def reset_overall_statistics():
            logger.debug("Received overall statistics reset request.")
            return jsonify(self.manager.reset_overall_statistics().to_json())

        @self.app.route('/statistics/<trigger_name>')
        def trigger_statistics(trigger_name):
            logger.debug(f"Received statistics request for {trigger_name}.")
            statistics = self.manager.get_trigger_statistics(trigger_name)
            if statistics is None:
                return jsonify({
                    'success': False,
                    'error': f'Unknown trigger {trigger_name}'
                }), 404
            return jsonify(statistics.to_json())

        @self.app.route('/statistics/<trigger_name>/reset')
        def reset_trigger_statistics(trigger_name):
            logger.debug(f"Received statistics reset request for {trigger_name}.")
            statistics = self.manager.reset_trigger_statistics(trigger_name)
            if statistics is None:
                return jsonify({
                    'success': False,
                    'error': f'Unknown trigger {trigger_name}'
                }), 404
            return jsonify(statistics.to_json())

        @self.app.route('/annotations/<path:filename>')
        def annotations(filename):
            return self._serve(Locations.ANNOTATIONS, filename)

        @self.app.route('/originals/<path:filename>')
        def originals(filename):
            return self._serve(Locations.ORIGINALS, filename)

    def _serve(self, location: Locations, filename: str):
        """Serve a file from a local storage location."""
        if self.storage is None:
            return jsonify({
                'success': False,
                'error': 'Local storage is not available'
            }), 404

        location_dir = self.storage.location_path(location)
        file_path = os.path.join(location_dir, filename)

        # Only files inside the location directory may be served
        if not os.path.abspath(file_path).startswith(os.path.abspath(location_dir) + os.sep):
            return jsonify({
                'success': False,
                'error': 'Access denied'
            }), 403

        if not os.path.isfile(file_path):
            return jsonify({
                'success': False,
                'error': 'Image not found'
            }), 404

        return send_file(os.path.abspath(file_path))

    def run(self, host='0.0.0.0', port=4242, debug=False):
        """Run the Flask application."""
        logger.info(f"Starting web server on {host}:{port}")
        self.app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)

    def get_app(self):
        """Get the Flask app instance for external WSGI servers."""
        return self.app


def create_app(manager: TriggerManager, storage: Optional[LocalStorage] = None) -> Flask:
    """Factory function to create Flask app."""
    web_app = TriggerWebApp(manager, storage)
    return web_app.get_app()
