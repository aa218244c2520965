import csv

import pytest

import experiments as exp


@pytest.mark.parametrize("pipeline", exp.PIPELINES)
@pytest.mark.parametrize("generator", ["english_like", "zipf64", "single_symbol"])
def test_run_one_decodes_correctly(generator, pipeline):
    data = exp.generate_dataset(generator, 2048, seed=1)
    row = exp.run_one(data, pipeline)
    assert row.correctness_ok == 1
    assert row.pipeline == pipeline
    assert row.file_size_bytes == 2048
    # a Huffman code never beats the entropy and is within one bit of it
    assert row.entropy_bits <= row.bits_per_symbol < row.entropy_bits + 1


def test_single_symbol_dataset_has_empty_payload():
    row = exp.run_one(exp.generate_dataset("single_symbol", 1024, seed=0), "code_table")
    assert row.unique_symbols == 1
    assert row.compressed_bytes == 0
    assert row.correctness_ok == 1


def test_run_one_rejects_unknown_pipeline():
    with pytest.raises(ValueError):
        exp.run_one(b"abc", "arithmetic")


def test_generators_are_reproducible():
    assert exp.generate_dataset("zipf128", 512, seed=3) == exp.generate_dataset("zipf128", 512, seed=3)
    assert len(exp.generate_dataset("uniform256", 100, seed=0)) == 100
    with pytest.raises(ValueError):
        exp.generate_dataset("nope", 10, seed=0)


def test_shannon_entropy():
    assert exp.shannon_entropy({1: 4, 2: 4}) == pytest.approx(1.0)
    assert exp.shannon_entropy({1: 9}) == 0.0


def test_main_writes_csv_files(tmp_path):
    code = exp.main([
        "--outdir", str(tmp_path), "--runs", "1", "--no_exp2", "--no_exp3", "--no_plots",
        "--exp1_size_kb", "1", "--exp1_generators", "english_like,single_symbol",
    ])
    assert code == 0
    with (tmp_path / "metrics.csv").open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 4
    assert all(r["correctness_ok"] == "1" for r in rows)
    with (tmp_path / "summary.csv").open(newline="", encoding="utf-8") as f:
        summary = list(csv.DictReader(f))
    assert {r["pipeline"] for r in summary} == set(exp.PIPELINES)


def test_main_writes_charts(tmp_path):
    code = exp.main([
        "--outdir", str(tmp_path), "--runs", "1", "--no_exp2", "--no_exp3",
        "--exp1_size_kb", "1", "--exp1_generators", "zipf64",
    ])
    assert code == 0
    assert (tmp_path / "exp1_bits_per_symbol.png").exists()


def test_main_rejects_unknown_generator(tmp_path, capsys):
    assert exp.main(["--outdir", str(tmp_path), "--exp1_generators", "bogus"]) == 1
    assert "bogus" in capsys.readouterr().err


def test_main_reads_sys_argv_by_default(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", [
        "experiments.py", "--outdir", str(tmp_path), "--runs", "1", "--no_exp2", "--no_exp3",
        "--no_plots", "--exp1_size_kb", "1", "--exp1_generators", "zipf64",
    ])
    assert exp.main() == 0
    assert (tmp_path / "metrics.csv").exists()
