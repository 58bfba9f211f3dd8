"""파일 크기 문자열 변환 테스트."""
import pytest

from utils.file_size import parse_file_size


class TestParseFileSize:

    @pytest.mark.parametrize(
        "size, expected",
        [
            ("100B", 100),
            ("512KB", 512 * 1024),
            ("512 kb", 512 * 1024),
            ("10MB", 10 * 1024 * 1024),
            ("1.5GB", int(1.5 * 1024 ** 3)),
            (" 2mb ", 2 * 1024 * 1024),
        ],
    )
    def test_valid(self, size, expected):
        assert parse_file_size(size) == expected

    @pytest.mark.parametrize("size", ["", "MB", "ten MB", "10", "10TB", "-5MB"])
    def test_invalid(self, size):
        with pytest.raises(ValueError):
            parse_file_size(size)
