"""Loading segment configuration from the database or a dump file."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from cluster_exec.models import SegConfig
from cluster_exec.protocols import DBConnection

logger = logging.getLogger(__name__)

SEGCONFIG_DUMP_FILE = "gpsegconfig_dump"

COLUMNS = (
    "dbid",
    "contentid",
    "role",
    "preferredrole",
    "mode",
    "status",
    "port",
    "hostname",
    "address",
    "datadir",
)

_LEGACY_QUERY = """
SELECT
\ts.dbid,
\ts.content as contentid,
\ts.role,
\ts.preferred_role as preferredrole,
\ts.mode,
\ts.status,
\ts.port,
\ts.hostname,
\ts.address,
\te.fselocation as datadir
FROM gp_segment_configuration s
JOIN pg_filespace_entry e ON s.dbid = e.fsedbid
JOIN pg_filespace f ON e.fsefsoid = f.oid
{where}
ORDER BY s.content, s.role DESC;"""

_QUERY = """
SELECT
\tdbid,
\tcontent as contentid,
\trole,
\tpreferred_role as preferredrole,
\tmode,
\tstatus,
\tport,
\thostname,
\taddress,
\tdatadir
FROM gp_segment_configuration
{where}
ORDER BY content, role DESC;"""


class SegmentConfigError(Exception):
    """Segment configuration could not be read or parsed."""


def build_segment_configuration_query(
    connection: DBConnection,
    include_mirrors: bool = False,
    only_mirrors: bool = False,
) -> str:
    """Build the segment configuration query for the connected server.

    GPDB before 6 keeps data directories in the filespace catalog, so the
    query joins it; later versions have a datadir column.

    Args:
        connection: Connection whose version selects the schema
        include_mirrors: Also return mirrors and the standby coordinator
        only_mirrors: Return only mirrors and the standby (wins over include_mirrors)
    """
    if connection.version.is_gpdb() and connection.version.before("6"):
        if only_mirrors:
            where = "WHERE s.role = 'm' AND f.fsname = 'pg_system'"
        elif include_mirrors:
            where = "WHERE f.fsname = 'pg_system'"
        else:
            where = "WHERE s.role = 'p' AND f.fsname = 'pg_system'"
        return _LEGACY_QUERY.format(where=where)

    if only_mirrors:
        where = "WHERE role = 'm'"
    elif include_mirrors:
        where = ""
    else:
        where = "WHERE role = 'p'"
    return _QUERY.format(where=where)


def _row_to_segconfig(row: Any) -> SegConfig:
    if isinstance(row, Mapping):
        values = [row[column] for column in COLUMNS]
    else:
        values = list(row)
    dbid, content, role, preferred_role, mode, status, port, hostname, address, datadir = values
    return SegConfig(
        dbid=int(dbid),
        content_id=int(content),
        role=role,
        preferred_role=preferred_role,
        mode=mode,
        status=status,
        port=int(port),
        hostname=hostname,
        address=address,
        datadir=datadir or "",
    )


def get_segment_configuration(
    connection: DBConnection,
    include_mirrors: bool = False,
    only_mirrors: bool = False,
) -> list[SegConfig]:
    """Fetch segment configuration from a live database.

    By default only primaries and the coordinator are returned.

    Returns:
        Segments ordered by content id, primary before mirror.
    """
    query = build_segment_configuration_query(connection, include_mirrors, only_mirrors)
    rows = connection.select(query)
    segments = [_row_to_segconfig(row) for row in rows]
    logger.debug("Fetched %d segment(s) from gp_segment_configuration", len(segments))
    return segments


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise SegmentConfigError(
            f"Failed to convert {name} with value {value} to an int. Error: {e}"
        ) from e


def parse_segconfig_line(line: str) -> SegConfig:
    """Parse one line of a gpsegconfig_dump file.

    Format: ``dbid content role preferred_role mode status port hostname
    address [datadir]``. Older files have no datadir column.

    Raises:
        SegmentConfigError: On a wrong field count or a non-integer number.
    """
    fields = line.split()
    if len(fields) not in (9, 10):
        raise SegmentConfigError(
            f"Unexpected number of fields ({len(fields)}) in line: {line}"
        )

    return SegConfig(
        dbid=_parse_int(fields[0], "dbID"),
        content_id=_parse_int(fields[1], "content"),
        role=fields[2],
        preferred_role=fields[3],
        mode=fields[4],
        status=fields[5],
        port=_parse_int(fields[6], "port"),
        hostname=fields[7],
        address=fields[8],
        datadir=fields[9] if len(fields) == 10 else "",
    )


def get_segment_configuration_from_file(coordinator_data_dir: str | Path) -> list[SegConfig]:
    """Read segment configuration from the coordinator's gpsegconfig_dump.

    Use this when the database is down. The FTS process rewrites the file
    periodically, so its contents can lag behind gp_segment_configuration.

    Args:
        coordinator_data_dir: Coordinator data directory (usually
            $COORDINATOR_DATA_DIRECTORY)

    Returns:
        Segments in file order.

    Raises:
        SegmentConfigError: If the path is empty, the file cannot be read,
            or a line is malformed.
    """
    if not str(coordinator_data_dir).strip():
        raise SegmentConfigError("Coordinator data directory path is empty")

    dump_path = Path(coordinator_data_dir) / SEGCONFIG_DUMP_FILE
    try:
        content = dump_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SegmentConfigError(f"Failed to open file {dump_path}. Error: {e}") from e
    except UnicodeDecodeError as e:
        raise SegmentConfigError(f"Failed to decode file {dump_path}. Error: {e}") from e

    segments = [parse_segconfig_line(line) for line in content.splitlines() if line.strip()]
    logger.debug("Read %d segment(s) from %s", len(segments), dump_path)
    return segments
