import csv

import pytest

import ratio_audit as ra
from ratio_audit import AuditConfig, audit_range, m_values


def small_config(tmp_path, **kw):
    params = dict(m_min=0.0, m_max=6.0, m_step=1.0,
                  csv_path=str(tmp_path / "audit.csv"), progress=False)
    params.update(kw)
    return AuditConfig(**params)


def test_grid_includes_both_ends(tmp_path):
    cfg = small_config(tmp_path, m_min=1.0, m_max=2.0, m_step=0.1)
    values = m_values(cfg)
    assert len(values) == 11
    assert values[0] == 1.0
    assert values[-1] == pytest.approx(2.0)


@pytest.mark.parametrize("kw", [dict(m_step=0.0), dict(m_min=-1.0), dict(m_min=3.0, m_max=2.0)])
def test_grid_rejects_bad_ranges(tmp_path, kw):
    with pytest.raises(ValueError):
        m_values(small_config(tmp_path, **kw))


def test_audit_rows(tmp_path):
    rows = audit_range(small_config(tmp_path, check_minimality=True))
    assert [r.n for r in rows] == [1, 2, 4, 11, 31, 83, 227]
    assert all(r.minimal for r in rows)
    # 0.564 * e^4 = 30.79..., one short of 31
    assert rows[4].initial_guess == 30
    assert rows[4].overshoot == -1
    assert rows[3].overshoot == 0
    assert rows[6].table_ratio == pytest.approx(0.564)


def test_minimality_not_checked_by_default(tmp_path):
    rows = audit_range(small_config(tmp_path, m_max=2.0))
    assert all(r.minimal is None for r in rows)


def test_csv_output(tmp_path):
    cfg = small_config(tmp_path)
    rows = audit_range(cfg)
    ra.write_csv(rows, tmp_path / "audit.csv")
    with (tmp_path / "audit.csv").open(newline="", encoding="utf-8") as f:
        table = list(csv.reader(f))
    assert table[0] == ra.CSV_COLUMNS
    assert len(table) == len(rows) + 1
    assert table[3][1] == "4"


def test_plot_is_written(tmp_path):
    rows = audit_range(small_config(tmp_path))
    out = tmp_path / "ratios.png"
    ra.plot_ratios(rows, out, dpi=50)
    assert out.exists()
    assert out.stat().st_size > 0


def test_console_summary_counts_short_guesses(tmp_path):
    rows = audit_range(small_config(tmp_path, check_minimality=True))
    text = ra.console_summary(rows)
    # M = 0, 1 and 4 start below the answer
    assert "Guesses below N      : 3/7" in text
    assert "Non-minimal answers  : 0/7" in text
    assert "  ..." in text


def test_main_writes_outputs(tmp_path, capsys):
    csv_path = tmp_path / "a.csv"
    plot_path = tmp_path / "a.png"
    code = ra.main(["--m-max", "3", "--csv", str(csv_path), "--plot", str(plot_path), "--no-progress"])
    assert code == 0
    assert csv_path.exists()
    assert plot_path.exists()
    assert "Ratio audit | 7 values of M" in capsys.readouterr().out


def test_main_rejects_bad_step(tmp_path, capsys):
    code = ra.main(["--m-step", "0", "--csv", str(tmp_path / "a.csv"), "--no-progress"])
    assert code == 1
    assert "Audit aborted" in capsys.readouterr().err
