from flask import Blueprint, current_app, jsonify, request

from data_store import DataStore
from errors import InvalidPayload, ResourceNotFound
from schema_analyzer import SchemaAnalyzer
from template_generator import TemplateGenerator

router = Blueprint('router', __name__)


def _store() -> DataStore:
    return current_app.extensions['json_server']['store']


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        raise InvalidPayload("Request body must be valid JSON")
    return data


def _schema():
    return SchemaAnalyzer(_store().snapshot()).analyze_schema()


@router.errorhandler(ResourceNotFound)
def handle_not_found(e):
    return jsonify({"error": e.message}), 404


@router.errorhandler(InvalidPayload)
def handle_invalid_payload(e):
    return jsonify({"error": e.message}), 400


@router.route('/', methods=['GET'])
def index():
    """List the resources currently served"""
    schema = _schema()
    return jsonify({
        "resources": schema['collections'] + schema['singulars'],
        "routes": TemplateGenerator(schema).generate_templates(),
    })


@router.route('/db', methods=['GET'])
def get_db():
    return jsonify(_store().snapshot())


@router.route('/__schema', methods=['GET'])
def get_schema():
    """Endpoint to get the shape of the served document"""
    return jsonify(_schema())


@router.route('/__routes', methods=['GET'])
def get_routes():
    """Endpoint to get available routes"""
    return jsonify(TemplateGenerator(_schema()).generate_templates())


@router.route('/__status', methods=['GET'])
def get_status():
    """Reload bookkeeping and watcher state"""
    store = _store()
    watcher = current_app.extensions['json_server'].get('watcher')
    return jsonify({
        "db_file": store.db_file,
        "version": store.version,
        "reload": store.state.as_dict(),
        "watcher": watcher.status() if watcher is not None else None,
    })


@router.route('/<name>', methods=['GET', 'POST', 'PUT', 'PATCH'])
def resource(name):
    store = _store()
    if request.method == 'GET':
        return jsonify(store.get_resource(name))
    if request.method == 'POST':
        return jsonify(store.insert(name, _payload())), 201
    if request.method == 'PUT':
        return jsonify(store.replace_resource(name, _payload()))
    return jsonify(store.patch_resource(name, _payload()))


@router.route('/<name>/<item_id>', methods=['GET', 'PUT', 'PATCH', 'DELETE'])
def item(name, item_id):
    store = _store()
    if request.method == 'GET':
        return jsonify(store.get_item(name, item_id))
    if request.method == 'PUT':
        return jsonify(store.replace_item(name, item_id, _payload()))
    if request.method == 'PATCH':
        return jsonify(store.patch_item(name, item_id, _payload()))
    store.delete_item(name, item_id)
    return jsonify({})
