"""Tests for data quality checks."""

from datetime import date, timedelta

from seasonality.data.quality import (CsvLayout, detect_outliers,
                                      find_date_gaps, find_duplicate_dates,
                                      run_quality_check, validate_dataset,
                                      validate_required_columns, validate_row)
from seasonality.types import Bar


def _row(d: str, o: str = "100", h: str = "105", low: str = "95", c: str = "101", **extra: str) -> dict:
    row = {"Date": d, "Open": o, "High": h, "Low": low, "Close": c}
    row.update(extra)
    return row


class TestColumns:
    """Tests for header validation."""

    def test_aliases_are_resolved(self) -> None:
        """Short and alternative spellings count as the canonical column."""
        result = validate_required_columns(["Timestamp", "O", "H", "L", "C"])
        assert result.valid
        assert result.normalized_headers == ["date", "open", "high", "low", "close"]

    def test_missing_columns(self) -> None:
        """Missing columns are listed in layout order."""
        result = validate_required_columns(["date", "close"], CsvLayout.OHLCV)
        assert not result.valid
        assert result.missing_columns == ["open", "high", "low", "volume"]

    def test_seasonality_layout_needs_symbol(self) -> None:
        """The seasonality layout also requires a symbol column."""
        result = validate_required_columns(["Date", "Open", "High", "Low", "Close"], CsvLayout.SEASONALITY)
        assert result.missing_columns == ["symbol"]


class TestValidateRow:
    """Tests for single-row validation."""

    def test_valid_row(self) -> None:
        """A consistent row has no issues."""
        result = validate_row(_row("02-01-2024", Volume="1,000"), 1)
        assert result.valid
        assert result.warnings == []

    def test_missing_date(self) -> None:
        """An empty date is an error."""
        result = validate_row(_row(""), 3)
        assert not result.valid
        assert result.errors[0].message == "Row 3: Missing date"

    def test_invalid_date(self) -> None:
        """Unparseable dates are errors."""
        result = validate_row(_row("2024/13/45"), 1)
        assert result.errors[0].field == "date"
        assert 'Invalid date format "2024/13/45"' in result.errors[0].message

    def test_non_numeric_price(self) -> None:
        """A price that is not a number is an error."""
        result = validate_row(_row("2024-01-02", c="n/a"), 1)
        assert [e.field for e in result.errors] == ["close"]

    def test_high_below_low(self) -> None:
        """High below low is an error."""
        result = validate_row(_row("2024-01-02", h="90", low="95", o="92", c="92"), 1)
        assert any("High (90.0) is less than Low (95.0)" in e.message for e in result.errors)

    def test_warnings(self) -> None:
        """Open above high and negative volume are warnings only."""
        result = validate_row(_row("2024-01-02", o="110", Volume="-5"), 7)
        assert result.valid
        fields = [w.field for w in result.warnings]
        assert "open" in fields
        assert "volume" in fields

    def test_bar_input(self) -> None:
        """Bars are validated like rows."""
        bar = Bar(date=date(2024, 1, 2), open=1, high=2, low=0.5, close=1.5)
        assert validate_row(bar, 1).valid


class TestDatasetChecks:
    """Tests for dataset-wide checks."""

    def test_validate_dataset_counts(self) -> None:
        """Totals count every issue; rows with errors are invalid."""
        rows = [_row("2024-01-02"), _row("bad"), _row("2024-01-04", o="120")]

        result = validate_dataset(rows)

        assert not result.valid
        assert result.total_rows == 3
        assert result.valid_rows == 2
        assert result.invalid_rows == 1
        assert result.total_errors == 1
        assert result.total_warnings == 1

    def test_issue_list_is_capped(self) -> None:
        """Only the first 100 issues are kept."""
        rows = [_row("") for _ in range(150)]

        result = validate_dataset(rows)

        assert result.total_errors == 150
        assert len(result.errors) == 100

    def test_duplicate_dates(self) -> None:
        """The repeat points back at the first occurrence."""
        rows = [_row("2024-01-02"), _row("2024-01-03"), _row("02-01-2024")]

        report = find_duplicate_dates(rows)

        assert report.has_duplicates
        assert report.duplicates[0].date == date(2024, 1, 2)
        assert report.duplicates[0].first_row_number == 1
        assert report.duplicates[0].duplicate_row_number == 3

    def test_duplicates_are_per_symbol(self) -> None:
        """Same date for different symbols is not a duplicate."""
        rows = [_row("2024-01-02", Symbol="AAA"), _row("2024-01-02", Symbol="BBB")]
        assert not find_duplicate_dates(rows, symbol_field="symbol").has_duplicates
        assert find_duplicate_dates(rows).duplicate_count == 1

    def test_date_gaps(self) -> None:
        """An eight-day gap exceeds the default of five."""
        rows = [_row("2024-01-01"), _row("2024-01-02"), _row("2024-01-10")]

        report = find_date_gaps(rows)

        assert report.gap_count == 1
        gap = report.gaps[0]
        assert gap.from_date == date(2024, 1, 2)
        assert gap.to_date == date(2024, 1, 10)
        assert gap.gap_days == 8
        assert gap.index == 2

    def test_weekend_is_not_a_gap(self) -> None:
        """Friday to Monday stays within the tolerance."""
        rows = [_row("2024-01-05"), _row("2024-01-08")]
        assert not find_date_gaps(rows).has_gaps


class TestOutliers:
    """Tests for z-score outlier detection."""

    def test_single_jump_is_flagged(self) -> None:
        """One large move in a calm series is the only outlier."""
        start = date(2024, 1, 1)
        closes = [100 + i % 2 for i in range(20)] + [130 + i % 2 for i in range(20)]
        rows = [
            _row((start + timedelta(days=i)).isoformat(), c=str(c), h=str(c + 1), low=str(c - 1), o=str(c))
            for i, c in enumerate(closes)
        ]

        report = detect_outliers(rows)

        assert report.outlier_count == 1
        point = report.outliers[0]
        assert point.index == 20
        assert point.date == start + timedelta(days=20)
        assert point.return_percentage > 25
        assert point.z_score > 3

    def test_flat_series_has_no_outliers(self) -> None:
        """Zero spread means no outliers."""
        rows = [_row(f"2024-01-0{i}", c="100") for i in range(1, 8)]

        report = detect_outliers(rows)

        assert report.outlier_count == 0
        assert report.std_dev == 0

    def test_too_few_rows(self) -> None:
        """A single row has no returns."""
        assert detect_outliers([_row("2024-01-02")]).outlier_count == 0


class TestRunQualityCheck:
    """Tests for the combined report."""

    def test_rows_are_sorted_before_checking(self) -> None:
        """Out-of-order rows do not create gaps or odd date ranges."""
        rows = [_row("2024-01-04"), _row("2024-01-02"), _row("2024-01-03")]

        report = run_quality_check(rows)

        assert report.overall_valid
        assert report.total_rows == 3
        assert report.date_range is not None
        assert report.date_range.start == date(2024, 1, 2)
        assert report.date_range.end == date(2024, 1, 4)
        assert not report.gaps.has_gaps

    def test_duplicates_make_report_invalid(self) -> None:
        """Valid rows with a repeated date are not overall valid."""
        report = run_quality_check([_row("2024-01-02"), _row("2024-01-02")])
        assert report.validation.valid
        assert not report.overall_valid

    def test_errors_make_report_invalid(self) -> None:
        """Row errors fail the report, and bad dates sort last."""
        report = run_quality_check([_row("nope"), _row("2024-01-02")])
        assert not report.overall_valid
        assert report.validation.errors[0].row_number == 2

    def test_gaps_and_outliers_do_not_fail_the_report(self) -> None:
        """Gaps are informational."""
        report = run_quality_check([_row("2024-01-01"), _row("2024-03-01")], max_gap_days=3)
        assert report.gaps.has_gaps
        assert report.overall_valid
