from flask import Blueprint, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Civilization VI turn tracker!'})


@main.route('/api/health')
def health():
    return jsonify({'status': 'ok'})
