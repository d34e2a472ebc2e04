from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Finger Picker server!'})

@main.route('/health')
def health():
    tables = current_app.extensions['fingerpicker.tables']
    return jsonify({'status': 'healthy', 'tables': len(tables)})
