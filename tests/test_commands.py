"""Tests for command configuration loaders and runners."""

import csv
from datetime import date, timedelta
from pathlib import Path

import pytest
import yaml

from seasonality.commands.annotate import (flatten_row, load_annotate_config,
                                           run_annotate)
from seasonality.commands.config import (parse_date_range, parse_log_level,
                                         parse_source, parse_symbols)
from seasonality.commands.filter_data import load_filter_config, run_filter
from seasonality.exceptions import ConfigError, DataValidationError
from seasonality.types import (DateRange, ElectionYearType, FillMethod,
                               Granularity, YearKind)


def _write_prices(path: Path, start: date, end: date, symbols: tuple[str, ...] = ("NIFTY",)) -> Path:
    """Write weekday prices for each symbol."""
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Date", "Symbol", "Open", "High", "Low", "Close", "Volume"])
        for symbol in symbols:
            d = start
            i = 0
            while d <= end:
                if d.weekday() < 5:
                    close = 100 + (i * 37) % 23 + i * 0.1
                    writer.writerow([d.strftime("%d-%m-%Y"), symbol, close, close + 1, close - 1, close, 1000])
                    i += 1
                d += timedelta(days=1)
    return path


def _write_yaml(path: Path, config: dict) -> Path:
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


@pytest.fixture
def prices(tmp_path: Path) -> Path:
    """Two years of prices for one symbol."""
    return _write_prices(tmp_path / "prices.csv", date(2023, 11, 1), date(2024, 4, 30))


class TestConfigHelpers:
    """Tests for shared YAML helpers."""

    def test_parse_source(self) -> None:
        """Source type is lower-cased and params default to empty."""
        assert parse_source({"source": {"type": "CSV"}}) == ("csv", {})

    @pytest.mark.parametrize(
        "raw,match",
        [
            ({}, "Missing required field: source"),
            ({"source": "csv"}, "'source' must be a mapping"),
            ({"source": {"type": "ftp"}}, "Invalid source type"),
            ({"source": {"type": "csv", "params": [1]}}, "'source.params' must be a mapping"),
        ],
    )
    def test_parse_source_errors(self, raw: dict, match: str) -> None:
        """Malformed source sections raise ConfigError."""
        with pytest.raises(ConfigError, match=match):
            parse_source(raw)

    def test_parse_date_range(self) -> None:
        """Both date spellings and native YAML dates are accepted."""
        result = parse_date_range({"start": "01-01-2024", "end": date(2024, 6, 30)})
        assert result == DateRange(start=date(2024, 1, 1), end=date(2024, 6, 30))
        assert parse_date_range(None) is None

    def test_parse_date_range_errors(self) -> None:
        """Missing keys, bad dates and reversed ranges raise."""
        with pytest.raises(ConfigError, match="must contain 'start' and 'end'"):
            parse_date_range({"start": "2024-01-01"})
        with pytest.raises(ConfigError, match="Invalid date for 'date_range.end'"):
            parse_date_range({"start": "2024-01-01", "end": "soon"})
        with pytest.raises(ConfigError, match="must not be after"):
            parse_date_range({"start": "2024-02-01", "end": "2024-01-01"})

    def test_parse_symbols(self) -> None:
        """Symbols are upper-cased."""
        assert parse_symbols(["nifty", "Bank"]) == ["NIFTY", "BANK"]
        with pytest.raises(ConfigError, match="must be a list"):
            parse_symbols("NIFTY")

    def test_parse_log_level(self) -> None:
        """Levels are validated case-insensitively."""
        assert parse_log_level({}) == "INFO"
        assert parse_log_level({"logging": {"level": "debug"}}) == "DEBUG"
        with pytest.raises(ConfigError, match="Invalid log level"):
            parse_log_level({"logging": {"level": "LOUD"}})


class TestLoadAnnotateConfig:
    """Tests for annotate configuration loading."""

    def test_full_config(self, tmp_path: Path, prices: Path) -> None:
        """Every section is parsed."""
        path = _write_yaml(
            tmp_path / "annotate.yaml",
            {
                "source": {"type": "csv", "params": {"file_path": str(prices)}},
                "symbols": ["nifty"],
                "date_range": {"start": "2024-01-01", "end": "2024-03-31"},
                "quality": {"fail_on_invalid": True, "max_gap_days": 4},
                "fill_method": "Interpolate",
                "output_dir": str(tmp_path / "out"),
                "logging": {"level": "warning"},
            },
        )

        config = load_annotate_config(path)

        assert config.data_source == "csv"
        assert config.symbols == ["NIFTY"]
        assert config.date_range == DateRange(start=date(2024, 1, 1), end=date(2024, 3, 31))
        assert config.quality.fail_on_invalid is True
        assert config.quality.max_gap_days == 4
        assert config.quality.enabled is True
        assert config.fill_method is FillMethod.INTERPOLATE
        assert config.output_dir == tmp_path / "out"
        assert config.log_level == "WARNING"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise ConfigError."""
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_annotate_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML raises ConfigError."""
        path = tmp_path / "broken.yaml"
        path.write_text("source: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_annotate_config(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """A list at the top level is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_annotate_config(path)

    def test_missing_output_dir(self, tmp_path: Path) -> None:
        """output_dir is required."""
        path = _write_yaml(tmp_path / "a.yaml", {"source": {"type": "csv"}})
        with pytest.raises(ConfigError, match="output_dir"):
            load_annotate_config(path)

    @pytest.mark.parametrize(
        "quality,match",
        [
            ({"max_gap_days": 0}, "max_gap_days"),
            ({"outlier_threshold": -1}, "outlier_threshold"),
            ({"enabled": "maybe"}, "Invalid 'quality' section"),
        ],
    )
    def test_invalid_quality(self, tmp_path: Path, quality: dict, match: str) -> None:
        """Quality settings are validated."""
        path = _write_yaml(
            tmp_path / "a.yaml",
            {"source": {"type": "csv"}, "output_dir": "out", "quality": quality},
        )
        with pytest.raises(ConfigError, match=match):
            load_annotate_config(path)

    def test_invalid_fill_method(self, tmp_path: Path) -> None:
        """Unknown fill methods are rejected."""
        path = _write_yaml(
            tmp_path / "a.yaml",
            {"source": {"type": "csv"}, "output_dir": "out", "fill_method": "guess"},
        )
        with pytest.raises(ConfigError, match="Invalid fill_method"):
            load_annotate_config(path)


class TestRunAnnotate:
    """Tests for the annotate runner."""

    def test_writes_five_series_per_symbol(self, tmp_path: Path) -> None:
        """One folder per symbol, one CSV per granularity."""
        prices = _write_prices(
            tmp_path / "prices.csv", date(2024, 1, 1), date(2024, 2, 29), symbols=("AAA", "BBB")
        )
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config)

        assert set(result.series) == {"AAA", "BBB"}
        assert len(result.written) == 10
        assert set(result.quality) == {"AAA", "BBB"}
        assert all(report.overall_valid for report in result.quality.values())

        daily_csv = tmp_path / "out" / "AAA" / "daily.csv"
        with open(daily_csv, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == len(result.series["AAA"].daily)
        assert "monday_week_number_monthly" in rows[0]
        assert "expiry_week_return_percentage" in rows[0]
        assert rows[0]["date"] == "2024-01-01"

    def test_dry_run_writes_nothing(self, tmp_path: Path, prices: Path) -> None:
        """write=False derives without touching the output directory."""
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "quality": {"enabled": False},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config, write=False)

        assert result.written == []
        assert result.quality == {}
        assert not (tmp_path / "out").exists()
        assert result.series["NIFTY"].monthly

    def test_fail_on_invalid(self, tmp_path: Path) -> None:
        """Duplicate dates abort the run when gating is on."""
        path = tmp_path / "dupes.csv"
        path.write_text(
            "Date,Symbol,Open,High,Low,Close\n"
            "2024-01-02,X,1,2,0.5,1.5\n"
            "2024-01-02,X,1,2,0.5,1.6\n",
            encoding="utf-8",
        )
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(path)}},
                    "quality": {"fail_on_invalid": True},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        with pytest.raises(DataValidationError, match="Quality check failed"):
            run_annotate(config, write=False)

    def test_quality_ignores_symbols_not_requested(self, tmp_path: Path) -> None:
        """A bad row for another symbol does not fail the requested one."""
        prices = _write_prices(tmp_path / "prices.csv", date(2024, 1, 1), date(2024, 1, 26), symbols=("AAA",))
        with open(prices, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(["10-01-2024", "BBB", 50, 40, 60, 50, 10])
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "symbols": ["AAA"],
                    "quality": {"fail_on_invalid": True},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config, write=False)

        assert set(result.quality) == {"AAA"}
        assert result.quality["AAA"].total_rows == 20
        assert result.quality["AAA"].overall_valid

    def test_quality_ignores_rows_outside_date_range(self, tmp_path: Path) -> None:
        """Only rows inside the configured date range are checked."""
        prices = _write_prices(tmp_path / "prices.csv", date(2024, 1, 1), date(2024, 1, 26))
        with open(prices, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(["01-03-2024", "NIFTY", 50, 40, 60, 50, 10])
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "date_range": {"start": "2024-01-01", "end": "2024-01-31"},
                    "quality": {"fail_on_invalid": True},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config, write=False)

        assert result.quality["NIFTY"].total_rows == 20
        assert result.quality["NIFTY"].validation.invalid_rows == 0

    def test_quality_is_checked_per_symbol(self, tmp_path: Path) -> None:
        """Returns are never measured between rows of different symbols."""
        prices = _write_prices(tmp_path / "prices.csv", date(2024, 1, 1), date(2024, 1, 26), symbols=("AAA",))
        with open(prices, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(["10-01-2024", "BBB", 20000, 20100, 19900, 20000, 10])
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config, write=False)

        assert set(result.quality) == {"AAA", "BBB"}
        assert result.quality["BBB"].total_rows == 1
        assert result.quality["BBB"].outliers.outlier_count == 0
        assert all(abs(point.return_percentage) < 50 for point in result.quality["AAA"].outliers.outliers)

    def test_fail_on_invalid_names_the_symbol(self, tmp_path: Path) -> None:
        """The failing symbol is named when gating aborts the run."""
        prices = _write_prices(tmp_path / "prices.csv", date(2024, 1, 1), date(2024, 1, 26), symbols=("AAA",))
        with open(prices, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(["10-01-2024", "BBB", 50, 40, 60, 50, 10])
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "quality": {"fail_on_invalid": True},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        with pytest.raises(DataValidationError, match="BBB: 1 invalid rows"):
            run_annotate(config, write=False)

    def test_fill_method_adds_rows(self, tmp_path: Path) -> None:
        """Short weekday gaps are filled before deriving."""
        path = tmp_path / "gappy.csv"
        path.write_text(
            "Date,Close\n2024-01-05,100\n2024-01-10,110\n",
            encoding="utf-8",
        )
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(path), "symbol": "X"}},
                    "fill_method": "forward",
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )

        result = run_annotate(config, write=False)

        assert len(result.series["X"].daily) == 4

    def test_flatten_row(self, tmp_path: Path, prices: Path) -> None:
        """Nested week contexts become prefixed columns."""
        config = load_annotate_config(
            _write_yaml(
                tmp_path / "annotate.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "output_dir": str(tmp_path / "out"),
                },
            )
        )
        row = run_annotate(config, write=False).series["NIFTY"].daily[5]

        record = flatten_row(row)

        assert "monday_week" not in record
        assert record["monday_week_date"] == row.monday_week.week_date.isoformat()
        assert record["expiry_week_positive_week"] == row.expiry_week.positive_week


class TestLoadFilterConfig:
    """Tests for filter configuration loading."""

    def test_full_config(self, tmp_path: Path, prices: Path) -> None:
        """camelCase filters, granularity and today are parsed."""
        path = _write_yaml(
            tmp_path / "filter.yaml",
            {
                "source": {"type": "csv", "params": {"file_path": str(prices)}},
                "symbol": "nifty",
                "granularity": "Monthly",
                "filters": {"yearFilters": {"evenOdd": "Election"}, "electionYearType": "Current"},
                "group_by": "even_month",
                "output_path": str(tmp_path / "filtered.csv"),
                "today": "2024-06-01",
            },
        )

        config = load_filter_config(path)

        assert config.symbol == "NIFTY"
        assert config.granularity is Granularity.MONTHLY
        assert config.filters.year_filters is not None
        assert config.filters.year_filters.even_odd is YearKind.ELECTION
        assert config.filters.election_year_type is ElectionYearType.CURRENT
        assert config.group_by == "even_month"
        assert config.output_path == tmp_path / "filtered.csv"
        assert config.today == date(2024, 6, 1)

    def test_defaults(self, tmp_path: Path) -> None:
        """Only the source is required."""
        config = load_filter_config(_write_yaml(tmp_path / "f.yaml", {"source": {"type": "yahoo"}}))
        assert config.granularity is Granularity.DAILY
        assert config.symbol is None
        assert config.filters.year_filters is None
        assert config.output_path is None

    @pytest.mark.parametrize(
        "extra,match",
        [
            ({"granularity": "hourly"}, "Invalid granularity"),
            ({"filters": ["a"]}, "'filters' must be a mapping"),
            ({"filters": {"monthFilters": {"specificMonth": 13}}}, "Invalid 'filters' section"),
            ({"group_by": 3}, "'group_by' must be a field name"),
            ({"today": "someday"}, "Invalid date for 'today'"),
        ],
    )
    def test_invalid(self, tmp_path: Path, extra: dict, match: str) -> None:
        """Invalid entries raise ConfigError."""
        path = _write_yaml(tmp_path / "f.yaml", {"source": {"type": "csv"}, **extra})
        with pytest.raises(ConfigError, match=match):
            load_filter_config(path)


class TestRunFilter:
    """Tests for the filter runner."""

    def test_filters_and_summarises(self, tmp_path: Path, prices: Path) -> None:
        """Kept rows obey the filters and feed the statistics."""
        output = tmp_path / "filtered.csv"
        config = load_filter_config(
            _write_yaml(
                tmp_path / "filter.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "filters": {"dayFilters": {"weekdays": ["Monday"]}, "yearFilters": {"specificYears": [2024]}},
                    "group_by": "weekday",
                    "output_path": str(output),
                },
            )
        )

        result = run_filter(config)

        assert result.symbol == "NIFTY"
        assert result.rows
        assert all(r.weekday == "Monday" and r.date.year == 2024 for r in result.rows)
        assert result.years == [2024]
        assert result.statistics.all_count == len(result.rows)
        assert result.grouped is not None
        assert list(result.grouped) == ["Monday"]
        assert output.exists()

    def test_monthly_granularity(self, tmp_path: Path, prices: Path) -> None:
        """Filters run over the requested series."""
        config = load_filter_config(
            _write_yaml(
                tmp_path / "filter.yaml",
                {
                    "source": {"type": "csv", "params": {"file_path": str(prices)}},
                    "granularity": "monthly",
                    "filters": {"monthFilters": {"evenOdd": "Even"}},
                },
            )
        )

        result = run_filter(config)

        assert result.granularity is Granularity.MONTHLY
        assert result.total_rows == 6
        assert [r.date.month for r in result.rows] == [12, 2, 4]

    def test_several_symbols_need_a_choice(self, tmp_path: Path) -> None:
        """Without 'symbol' a multi-symbol source is ambiguous."""
        prices = _write_prices(tmp_path / "p.csv", date(2024, 1, 1), date(2024, 1, 31), ("A", "B"))
        config = load_filter_config(
            _write_yaml(tmp_path / "f.yaml", {"source": {"type": "csv", "params": {"file_path": str(prices)}}})
        )
        with pytest.raises(DataValidationError, match="several symbols"):
            run_filter(config)

    def test_no_bars(self, tmp_path: Path, prices: Path) -> None:
        """An unknown symbol loads nothing."""
        config = load_filter_config(
            _write_yaml(
                tmp_path / "f.yaml",
                {"source": {"type": "csv", "params": {"file_path": str(prices)}}, "symbol": "NOPE"},
            )
        )
        with pytest.raises(DataValidationError, match="No bars"):
            run_filter(config)
