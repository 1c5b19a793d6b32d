"""
GPX waypoint import for jeepney terminals.
"""
import math
import xml.etree.ElementTree as ET

from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert

from larga.models import JeepneyTerminal


def _local(tag):
    return tag.rsplit('}', 1)[-1]


def parse_gpx_waypoints(xml_text):
    """
    Extract named ``<wpt>`` entries from a GPX document.

    Waypoints without a name or with non-numeric coordinates are skipped.

    Raises:
        xml.etree.ElementTree.ParseError: if the document is not valid XML
    """
    root = ET.fromstring(xml_text)
    waypoints = []
    for element in root.iter():
        if _local(element.tag) != 'wpt':
            continue
        try:
            lat = float(element.get('lat'))
            lng = float(element.get('lon'))
        except (TypeError, ValueError):
            continue
        if not (math.isfinite(lat) and math.isfinite(lng)):
            continue

        name = None
        for child in element:
            if _local(child.tag) == 'name':
                name = (child.text or '').strip()
                break
        if not name:
            continue
        waypoints.append({'name': name, 'lat': lat, 'lng': lng})
    return waypoints


def terminal_upsert_sql(waypoints):
    """
    PostgreSQL ``INSERT ... ON CONFLICT (name) DO UPDATE`` statements, one per waypoint.
    """
    dialect = postgresql.dialect(paramstyle='named')
    table = JeepneyTerminal.__table__
    statements = []
    for waypoint in waypoints:
        stmt = insert(table).values(
            name=waypoint['name'],
            lat=round(waypoint['lat'], 8),
            lng=round(waypoint['lng'], 8),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.name],
            set_={'lat': stmt.excluded.lat, 'lng': stmt.excluded.lng},
        )
        compiled = stmt.compile(dialect=dialect, compile_kwargs={'literal_binds': True})
        statements.append(f"{compiled};")
    return statements


def render_runtime_config(api_base):
    """Browser runtime config exposing the API base URL."""
    escaped = (api_base or '').replace('\\', '\\\\').replace("'", "\\'")
    return f"window.__API_BASE__ = '{escaped}';\n"
