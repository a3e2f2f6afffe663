from pactrack.state import PackageUpdate, UpdateSource

ARROW = '->'


def parse_update_lines(output: str, source: UpdateSource) -> list[PackageUpdate]:
    """Parse `name current -> latest` lines, skipping anything malformed."""
    updates = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        update = parse_update_line(line, source)
        if update:
            updates.append(update)
    return updates


def parse_update_line(line: str, source: UpdateSource) -> PackageUpdate | None:
    """Parse a single update line. Returns None for lines with fewer than three fields."""
    parts = line.split()
    if len(parts) < 3:
        return None

    latest = parts[-1]
    if ARROW in parts:
        arrow_idx = parts.index(ARROW)
        if arrow_idx + 1 < len(parts):
            latest = parts[arrow_idx + 1]

    return PackageUpdate(
        name=parts[0],
        current=parts[1],
        latest=latest,
        source=source,
    )
