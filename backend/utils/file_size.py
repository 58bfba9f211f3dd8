"""사람이 읽는 파일 크기 문자열 변환."""
import re

_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
}

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([A-Za-z]{1,2})$")


def parse_file_size(size: str) -> int:
    """'10MB', '512 KB', '1.5GB' 형태를 바이트 수로 변환.

    Raises:
        ValueError: 형식이 잘못되었거나 단위를 알 수 없을 때
    """
    match = _SIZE_PATTERN.match(size.strip())
    if not match:
        raise ValueError(f"Invalid file size format: {size}")

    number, unit = match.groups()
    multiplier = _UNITS.get(unit.upper())
    if multiplier is None:
        raise ValueError(f"Unknown file size unit: {unit}")

    return int(float(number) * multiplier)
