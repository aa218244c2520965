"""
Huffman code table experiments

Builds codes for synthetic datasets, encodes them, then decodes either with
the freshly built tree or with a tree reloaded from its text code table, and
records timings, code efficiency and correctness for every run.

Outputs (in --outdir):
  - metrics.csv     (raw row per run per pipeline)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 256 --exp2_max_mb 4
  python experiments.py --outdir results --runs 5 --exp1_generators uniform256,zipf128,repetitive99,english_like
"""

from __future__ import annotations

import argparse
import csv
import io
import math
import random
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt

import codetable
import huffman as huff
from bitstream import BitReader, BitWriter
from errors import HuffmanError


PIPELINES = ("tree", "code_table")
ENGLISH_CHARS = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def shannon_entropy(ft: Dict[int, int]) -> float: # bits per symbol
    total = sum(ft.values())
    if total == 0:
        return 0.0
    return -sum((f / total) * math.log2(f / total) for f in ft.values() if f > 0)


def encode_with_codes(data: bytes, code_map: Dict[int, str]) -> Tuple[bytes, int, int]:
    """
    Writes the code of every byte into a packed bitstream
    Returns (packed_bytes, pad_bits, payload_bits)
    """
    writer = BitWriter()
    for b in data:
        writer.write_code(code_map[b])
    packed = writer.finish()
    return packed, writer.pad_bits, writer.bit_count


# Synthetic dataset generators

def _sample(rng: random.Random, symbols: Sequence[int], weights: Sequence[float], size: int) -> bytes:
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(alphabet) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    weights = [1.0 / ((rank + 1) ** s) for rank in range(alphabet)]
    return _sample(random.Random(seed), range(alphabet), weights, size)

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    # dominant symbol keeps dom_frac of the mass, the other 255 share the rest
    other = (1.0 - dom_frac) / 255
    weights = [dom_frac if sym == dominant else other for sym in range(256)]
    return _sample(random.Random(seed), range(256), weights, size)

def gen_single_symbol(size: int, symbol: int = ord('A'), seed: int = 0) -> bytes:
    return bytes([symbol]) * size

def gen_english_like(size: int, seed: int = 0) -> bytes:
    weights = []
    for ch in ENGLISH_CHARS:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample(random.Random(seed), [ord(ch) for ch in ENGLISH_CHARS], weights, size)

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"Unknown generator {name!r}, choose from {', '.join(sorted(GENERATOR_REGISTRY))}")
    return fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "tree" or "code_table"
    unique_symbols: int

    build_ms: float
    serialize_ms: float
    deserialize_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    code_table_bytes: int
    compressed_bytes: int
    pad_bits: int
    bits_per_symbol: float
    entropy_bits: float
    compression_ratio: float

    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str) -> MetricRow:
    if pipeline not in PIPELINES:
        raise ValueError(f"pipeline must be one of {PIPELINES}, got {pipeline!r}")
    ft = huff.frequency_table(data)

    t0 = now_ns()
    root = huff.build_huffman_tree(ft)
    t1 = now_ns()
    build_ms = ns_to_ms(t1 - t0)

    t2 = now_ns()
    pairs = huff.serialize_tree(root)
    table_text = codetable.dump_code_table(pairs)
    t3 = now_ns()
    serialize_ms = ns_to_ms(t3 - t2)
    code_map = dict(pairs)

    t4 = now_ns()
    packed, pad_bits, payload_bits = encode_with_codes(data, code_map)
    t5 = now_ns()
    encode_ms = ns_to_ms(t5 - t4)

    deserialize_ms = 0.0
    decode_root = root
    if pipeline == "code_table":
        t6 = now_ns()
        decode_root = codetable.load_tree(io.StringIO(table_text))
        t7 = now_ns()
        deserialize_ms = ns_to_ms(t7 - t6)

    # the symbol count frames the stream: padding bits and one-symbol codes carry no boundary
    t8 = now_ns()
    try:
        decoded = huff.decode_to_bytes(decode_root, BitReader(packed, pad_bits), count=len(data))
    except HuffmanError as exc:
        print(f"Decode failed ({pipeline}): {exc}", file=sys.stderr)
        decoded = b""
    t9 = now_ns()
    decode_ms = ns_to_ms(t9 - t8)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(ft),
        build_ms=build_ms,
        serialize_ms=serialize_ms,
        deserialize_ms=deserialize_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + serialize_ms + deserialize_ms + encode_ms + decode_ms,
        code_table_bytes=len(table_text.encode("ascii")),
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        bits_per_symbol=payload_bits / max(1, len(data)),
        entropy_bits=shannon_entropy(ft),
        compression_ratio=len(packed) / max(1, len(data)),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = (
    "compression_ratio", "bits_per_symbol", "build_ms", "serialize_ms",
    "deserialize_ms", "encode_ms", "decode_ms", "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, pipeline and compute mean/stdev
    """
    groups: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        groups.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes, r.pipeline), []).append(r)

    fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs", "entropy_bits"]
    for m in SUMMARY_METRICS:
        fields += [f"{m}_mean", f"{m}_stdev"]
    fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for (exp_name, dataset_name, size_b, pipeline), items in sorted(groups.items()):
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "pipeline": pipeline,
                "n_runs": len(items),
                "entropy_bits": statistics.mean(x.entropy_bits for x in items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                row[f"{m}_mean"], row[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(row)


# Plotting

def _mean_of(rows: List[MetricRow], field: str, **match) -> float:
    vals = [getattr(r, field) for r in rows if all(getattr(r, k) == v for k, v in match.items())]
    return statistics.mean(vals) if vals else float("nan")

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    # code efficiency does not depend on the pipeline, compare it with the entropy bound
    plt.figure()
    plt.plot(x, [_mean_of(exp_rows, "bits_per_symbol", dataset_name=d) for d in datasets], marker="o", label="huffman")
    plt.plot(x, [_mean_of(exp_rows, "entropy_bits", dataset_name=d) for d in datasets], marker="x", linestyle="--", label="entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Experiment 1: Code Length vs Entropy by Distribution")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_bits_per_symbol.png", dpi=200)
    plt.close()

    for field, label, name in (("decode_ms", "Decode Time (ms)", "decode_time"),
                               ("total_ms", "Total Time (ms)", "total_time")):
        plt.figure()
        for p in PIPELINES:
            plt.plot(x, [_mean_of(exp_rows, field, dataset_name=d, pipeline=p) for d in datasets], marker="o", label=p)
        plt.xticks(x, datasets, rotation=20, ha="right")
        plt.ylabel(label)
        plt.title(f"Experiment 1: {label} by Distribution")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp1_{name}.png", dpi=200)
        plt.close()


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        for field, label, name in (("encode_ms", "Encode Time (ms)", "encode_time"),
                                   ("decode_ms", "Decode Time (ms)", "decode_time")):
            plt.figure()
            for p in PIPELINES:
                y = [_mean_of(dist_rows, field, file_size_bytes=s, pipeline=p) for s in sizes]
                plt.plot(sizes, y, marker="o", label=p)
            plt.xlabel("File Size (bytes)")
            plt.ylabel(label)
            plt.title(f"Experiment 2: {label} vs Size ({dist})")
            plt.legend()
            plt.tight_layout()
            plt.savefig(outdir / f"exp2_{name}_{dist}.png", dpi=200)
            plt.close()

        plt.figure()
        y = [_mean_of(dist_rows, "compression_ratio", file_size_bytes=s) for s in sizes]
        plt.plot(sizes, y, marker="o")
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Compressed Bytes / Original Bytes")
        plt.title(f"Experiment 2: Compression Ratio vs Size ({dist})")
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_compression_ratio_{dist}.png", dpi=200)
        plt.close()


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_code_table_cost"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    plt.figure()
    for field, label in (("serialize_ms", "serialize"), ("deserialize_ms", "deserialize"), ("build_ms", "build")):
        y = [_mean_of(exp_rows, field, dataset_name=d, pipeline="code_table") for d in datasets]
        plt.plot(x, y, marker="o", label=label)
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Time (ms)")
    plt.title("Experiment 3: Code Table Build / Save / Load Time")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp3_code_table_time.png", dpi=200)
    plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def run_configs(exp_name: str, configs: List[Tuple[str, int, int]], runs: int, label_size: bool = False) -> List[MetricRow]:
    rows: List[MetricRow] = []
    for gen_name, size_b, seed in configs:
        for run_id in range(1, runs + 1):
            data = generate_dataset(gen_name, size_b, seed + run_id)
            for pipeline in PIPELINES:
                row = run_one(data, pipeline)
                row.exp_name = exp_name
                row.dataset_name = f"{gen_name}_{size_b // 1024}kb" if label_size else gen_name
                row.run_id = run_id
                rows.append(row)
    return rows

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman code table experiments.")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (code table cost)")
    ap.add_argument("--no_plots", action="store_true", help="Only write the CSV files")

    ap.add_argument("--exp1_size_kb", type=int, default=512, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names for experiment 1")

    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=8, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    args = ap.parse_args(argv)

    for names in (args.exp1_generators, args.exp2_generators):
        unknown = [n for n in parse_csv_list(names) if n not in GENERATOR_REGISTRY]
        if unknown:
            print(f"Unknown generators: {', '.join(unknown)}", file=sys.stderr)
            return 1

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    rows: List[MetricRow] = []

    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        configs = [(g, fixed_size, args.seed) for g in parse_csv_list(args.exp1_generators)]
        rows += run_configs("exp1_distribution", configs, args.runs)

    if not args.no_exp2:
        sizes: List[int] = []
        s = max(1, args.exp2_min_kb) * 1024
        while s <= max(1, args.exp2_max_mb) * 1024 * 1024:
            sizes.append(s)
            s *= 2
        configs = [(g, size_b, args.seed + 10_000 + size_b)
                   for g in parse_csv_list(args.exp2_generators) for size_b in sizes]
        rows += run_configs("exp2_size_scaling", configs, args.runs)

    if not args.no_exp3:
        # alphabet size drives code table cost, so sweep it at a fixed payload
        configs = [(g, 64 * 1024, args.seed + 200_000)
                   for g in ("single_symbol", "repetitive99", "zipf64", "english_like", "uniform128", "uniform256")]
        rows += run_configs("exp3_code_table_cost", configs, args.runs, label_size=True)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)
        plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0 if ok_rate == 1.0 or not rows else 2


if __name__ == "__main__":
    raise SystemExit(main())
