#!/usr/bin/env python3
"""
Key-value server for CabShare.

Values are opaque text stored under string keys in a single JSON file.
"""

import json
import os
import tempfile
import threading

from flask import Flask, jsonify, request
from flask_cors import CORS

# Path to the JSON database file
DB_FILE = os.getenv('CABSHARE_SERVER_DB', 'data/kv.json')


def create_app(db_file=DB_FILE):
    """Create the key-value server application."""
    app = Flask(__name__)
    CORS(app)
    # Serializes read-modify-write cycles across request threads
    lock = threading.Lock()

    def read_db():
        """Read the database from the JSON file."""
        if not os.path.exists(db_file):
            return {}
        with open(db_file, 'r') as f:
            return json.load(f)

    def write_db(data):
        """Write data to the JSON file, replacing it in one step."""
        directory = os.path.dirname(os.path.abspath(db_file))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, db_file)

    @app.route('/items', methods=['GET'])
    def list_keys():
        """List all stored keys."""
        with lock:
            return jsonify(sorted(read_db().keys()))

    @app.route('/items/<key>', methods=['GET', 'PUT', 'DELETE'])
    def manage_item(key):
        """Get, set or delete the value under a key."""
        with lock:
            return _manage_item(key)

    def _manage_item(key):
        db = read_db()

        if request.method == 'PUT':
            body = request.get_json(silent=True)
            if not isinstance(body, dict) or not isinstance(body.get('value'), str):
                return jsonify({"error": "Body must be a JSON object with a string 'value'"}), 400
            db[key] = body['value']
            write_db(db)
            return jsonify({"key": key, "value": db[key]})

        if key not in db:
            return jsonify({"error": f"Key '{key}' not found"}), 404

        if request.method == 'GET':
            return jsonify({"key": key, "value": db[key]})

        # DELETE
        value = db.pop(key)
        write_db(db)
        return jsonify({"key": key, "value": value})

    return app


if __name__ == '__main__':
    port = int(os.getenv('CABSHARE_SERVER_PORT', '3000'))
    create_app().run(host='0.0.0.0', port=port)
