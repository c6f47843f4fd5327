from typing import Any, Dict, List


class SchemaAnalyzer:
    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.schema_info = {}

    def analyze_schema(self) -> Dict:
        """Analyze the JSON document and classify its top-level keys as routes"""
        schema = {
            'resources': {},
            'collections': [],
            'singulars': [],
        }

        for name, value in self.data.items():
            analysis = self._analyze_resource(name, value)
            schema['resources'][name] = analysis

            if analysis['kind'] == 'collection':
                schema['collections'].append(name)
            else:
                schema['singulars'].append(name)

        self.schema_info = schema
        return schema

    def _analyze_resource(self, name: str, value: Any) -> Dict:
        """Analyze one top-level key"""
        analysis = {
            'name': name,
            'kind': 'collection' if isinstance(value, list) else 'singular',
            'json_type': _json_type(value),
            'count': None,
            'fields': [],
            'id_type': None,
        }

        if isinstance(value, list):
            analysis['count'] = len(value)
            records = [item for item in value if isinstance(item, dict)]
            analysis['fields'] = self._collect_fields(records)
            analysis['id_type'] = self._detect_id_type(records)
        elif isinstance(value, dict):
            analysis['fields'] = sorted(value.keys())

        return analysis

    def _collect_fields(self, records: List[Dict]) -> List[str]:
        fields = set()
        for record in records:
            fields.update(record.keys())
        return sorted(fields)

    def _detect_id_type(self, records: List[Dict]) -> str:
        """Detect how records in a collection are identified"""
        ids = [record['id'] for record in records if 'id' in record]
        if not ids:
            return 'none'
        if all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            return 'integer'
        if all(isinstance(i, str) for i in ids):
            return 'string'
        return 'mixed'


def _json_type(value: Any) -> str:
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return 'array'
    return 'object'
