import urllib.parse


def _rfc5987_filename(value: str) -> str:
    # Build a robust Content-Disposition filename / filename* pair
    quoted = urllib.parse.quote(value, safe="")
    fallback = value.encode("latin-1", "ignore").decode("latin-1").replace('"', "")
    return f'filename="{fallback}"; filename*=UTF-8\'\'{quoted}'


def attachment_disposition(filename: str) -> str:
    return f"attachment; {_rfc5987_filename(filename or 'download.bin')}"
