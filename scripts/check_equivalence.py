#!/usr/bin/env python3
"""
Equivalence checker for the two MSU engines.

Generates random coded matrices, runs the SUDA search and the exhaustive
search for every key size, and reports any disagreement together with the
time each engine took. Run this after touching the search code.

Usage:
    python scripts/check_equivalence.py --trials 200 --max-rows 12 --max-columns 6
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np
import pandas as pd
from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).parent.parent))

from msu_risk import CodedMatrix, ExhaustiveSearch, SudaSearch


def random_matrix(rng: np.random.Generator, max_rows: int, max_columns: int, max_domain: int) -> CodedMatrix:
    n_rows = int(rng.integers(1, max_rows + 1))
    n_columns = int(rng.integers(1, max_columns + 1))
    domains = rng.integers(1, max_domain + 1, size=n_columns)
    data = np.column_stack([rng.integers(0, d, size=n_rows) for d in domains])
    return CodedMatrix(data, domain_sizes=domains.tolist())


def main():
    parser = argparse.ArgumentParser(description="Cross-check SUDA search against exhaustive search")
    parser.add_argument('--trials', type=int, default=200)
    parser.add_argument('--max-rows', type=int, default=12)
    parser.add_argument('--max-columns', type=int, default=6)
    parser.add_argument('--max-domain', type=int, default=4)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    records = []
    errors = []

    for trial in tqdm(range(args.trials), desc="Trials"):
        matrix = random_matrix(rng, args.max_rows, args.max_columns, args.max_domain)

        for k_max in range(1, matrix.n_columns + 1):
            start = time.perf_counter()
            suda = SudaSearch(matrix).search(k_max)
            suda_time = time.perf_counter() - start

            start = time.perf_counter()
            exhaustive = ExhaustiveSearch(matrix, max_subsets=None).search(k_max)
            exhaustive_time = time.perf_counter() - start

            if suda != exhaustive:
                errors.append(f"trial {trial}, k_max={k_max}: "
                              f"suda={len(suda)} exhaustive={len(exhaustive)}\n"
                              f"{matrix.values.tolist()}")

            records.append({
                'trial': trial,
                'rows': matrix.n_rows,
                'columns': matrix.n_columns,
                'k_max': k_max,
                'n_msus': len(exhaustive),
                'suda_seconds': suda_time,
                'exhaustive_seconds': exhaustive_time,
            })

    timings = pd.DataFrame(records)

    print("=" * 60)
    print("EQUIVALENCE CHECK")
    print("=" * 60)
    print(f"Comparisons:          {len(timings):,}")
    print(f"Total MSUs compared:  {timings['n_msus'].sum():,}")
    print(f"SUDA time:            {timings['suda_seconds'].sum():.3f}s")
    print(f"Exhaustive time:      {timings['exhaustive_seconds'].sum():.3f}s")
    print("=" * 60)

    if errors:
        print("DISAGREEMENTS FOUND:")
        for e in errors:
            print(f"  - {e}")
        return 1
    else:
        print("All comparisons agree.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
