import pytest

from src.csv_processor import CSVTextSource, FileAccessError


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        CSVTextSource(tmp_path / "nope.csv")


def test_directory_is_rejected(tmp_path):
    with pytest.raises(FileAccessError):
        CSVTextSource(tmp_path)


def test_read_text_and_file_info(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("date, revenue, users\n2024-01-01, 100, 5\n2024-01-02, 150, 8\n")
    with CSVTextSource(path) as source:
        assert source.read_text().startswith("date, revenue")
        info = source.get_file_info()
    assert info["total_rows"] == 2
    # skipinitialspace strips the blanks after each comma
    assert info["columns"] == ["date", "revenue", "users"]
    assert info["column_count"] == 3
    assert info["dtypes"]["revenue"] == "int64"


def test_undecodable_file_raises_access_error(tmp_path):
    path = tmp_path / "binary.csv"
    path.write_bytes(b"\xff\xfe\x00bad")
    with pytest.raises(FileAccessError):
        CSVTextSource(path).read_text()


def test_print_file_info_reports_parse_errors(tmp_path, capsys):
    path = tmp_path / "ragged.csv"
    path.write_text('a,b\n"unterminated,1\n')
    CSVTextSource(path).print_file_info()
    assert "Error:" in capsys.readouterr().err
