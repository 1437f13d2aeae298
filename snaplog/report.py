"""
HTML report rendering for captured records.

Reports are meant for people (e-mail bodies, admin pages), not machines.
Every interpolated value goes through jinja2's autoescaping.
"""

from collections.abc import Mapping

from jinja2 import Environment

env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


def thousands(value):
    return f"{value:,}"


INT64_MIN = -(1 << 63)
UINT64_MASK = (1 << 64) - 1


def hexadecimal(value):
    """Uppercase hex; negative 64-bit values show their two's complement."""
    if INT64_MIN <= value < 0:
        value &= UINT64_MASK
    return f"{value:X}"


def is_mapping(value):
    return isinstance(value, Mapping)


def is_list(value):
    return isinstance(value, (list, tuple))


env.filters['thousands'] = thousands
env.filters['hex'] = hexadecimal
env.tests['field_mapping'] = is_mapping
env.tests['field_list'] = is_list

REPORT_TEMPLATE = """\
{% macro show(value) %}{% if value is none %}(null){% else %}{{ value }}{% endif %}{% endmacro %}
<div style="font-family: arial;max-width: 72em;">
<p style="font-size:160%;margin-bottom:0;">{{ record.kind.value }}: {{ record.message }}</p>
<div style="color:#888;font-size:80%;">
<div>Local Time: {{ record.created_at_local }} | UTC: {{ record.created_at_utc }}</div>
<div>UID: {{ record.id }} | StackSignature: {{ record.signature or "" }}</div>
</div>
{% for name, fields in record.categories.items() %}
<h3 style="margin-bottom: 0px;background:#ddd;padding:5px;">{{ name }}</h3>
{% for key, value in fields.items() %}
{% if value is none %}
<div><i style="display:inline-block;min-width:6em">{{ key }}</i> : (null)</div>
{% elif value is field_mapping %}
{% if value %}
<div><i style="display:inline-block;min-width:6em">{{ key }}</i> (dictionary):</div>
<div style="padding-left:2em;">
{% for k, v in value.items() %}
<div><i>{{ k }}</i>: {{ show(v) }}</div>
{% endfor %}
</div>
{% endif %}
{% elif value is field_list %}
{% if value %}
<div><i style="display:inline-block;min-width:6em">{{ key }}</i> (list):</div>
<div style="padding-left:2em;">
{% for v in value %}
<div><i>{{ loop.index0 }}</i>: {{ show(v) }}</div>
{% endfor %}
</div>
{% endif %}
{% elif value is integer %}
<div><i style="display:inline-block;min-width:6em">{{ key }}</i> : {{ value | thousands }} ({{ value | hex }})</div>
{% else %}
<div><i style="display:inline-block;min-width:6em">{{ key }}</i> : {{ value }}</div>
{% endif %}
{% endfor %}
{% endfor %}
</div>
"""

_template = env.from_string(REPORT_TEMPLATE)


def render_report(record) -> str:
    """Render a CategorizedRecord as a self-contained HTML fragment."""
    return _template.render(record=record)
