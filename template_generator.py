from typing import Dict, List


class TemplateGenerator:
    def __init__(self, schema_info: Dict):
        self.schema = schema_info

    def generate_templates(self) -> List[Dict]:
        """Generate route templates dynamically based on schema"""
        templates = []

        templates.extend(self._generate_collection_templates())
        templates.extend(self._generate_singular_templates())

        # Routes that exist whatever the document looks like
        templates.extend(self._generate_generic_templates())

        return templates

    def _generate_collection_templates(self) -> List[Dict]:
        """Generate CRUD templates for list-valued keys"""
        templates = []

        for name in self.schema['collections']:
            templates.extend([
                {"method": "GET", "path": f"/{name}", "resource": name},
                {"method": "GET", "path": f"/{name}/{{id}}", "resource": name},
                {"method": "POST", "path": f"/{name}", "resource": name},
                {"method": "PUT", "path": f"/{name}/{{id}}", "resource": name},
                {"method": "PATCH", "path": f"/{name}/{{id}}", "resource": name},
                {"method": "DELETE", "path": f"/{name}/{{id}}", "resource": name},
            ])

        return templates

    def _generate_singular_templates(self) -> List[Dict]:
        """Generate templates for object and scalar keys"""
        templates = []

        for name in self.schema['singulars']:
            templates.append({"method": "GET", "path": f"/{name}", "resource": name})
            templates.append({"method": "PUT", "path": f"/{name}", "resource": name})

            # Only objects can be merged into
            if self.schema['resources'][name]['json_type'] == 'object':
                templates.append({"method": "PATCH", "path": f"/{name}", "resource": name})

        return templates

    def _generate_generic_templates(self) -> List[Dict]:
        return [
            {"method": "GET", "path": "/", "resource": None},
            {"method": "GET", "path": "/db", "resource": None},
            {"method": "GET", "path": "/__routes", "resource": None},
            {"method": "GET", "path": "/__schema", "resource": None},
            {"method": "GET", "path": "/__status", "resource": None},
        ]
