#!/usr/bin/env python3
import time
import random
import string
import argparse
import resource
import pandas as pd

from balanced_rope import Rope, merge

def fmt_kb(kb: int) -> str:
    return f"{kb:,} KB"

def make_random_text(length: int) -> str:
    """
    Generate `length` random characters drawn from letters, digits and spaces.
    """
    alphabet = string.ascii_letters + string.digits + "    "
    return ''.join(random.choices(alphabet, k=length))


def benchmark(length: int, capacity: int, num_ops: int):
    text = make_random_text(length)
    n = len(text)

    # measure build
    mem0 = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    t0_wall = time.perf_counter()
    t0_cpu = time.process_time()
    rope = Rope(text, max_leaf_capacity=capacity)
    build_wall = time.perf_counter() - t0_wall
    build_cpu  = time.process_time() - t0_cpu
    mem1 = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss

    # prepare queries
    idxs   = [random.randrange(n) for _ in range(num_ops)]
    chunks = [(i, min(n, i + random.randint(1, 2 * capacity))) for i in idxs]
    other  = Rope(make_random_text(capacity * 4), max_leaf_capacity=capacity)

    results = {
        "n": n,
        "capacity": capacity,
        "leaves": len(rope.leaf_sizes()),
        "height": rope.height(),
        "build_wall_s": build_wall,
        "build_cpu_s": build_cpu,
        "build_rss": fmt_kb(mem1 - mem0),
    }

    def measure(fn, qs):
        if not qs:
            return None

        times = []
        for q in qs:
            start = time.perf_counter()
            fn(*q)
            times.append(time.perf_counter() - start)
        return sum(times) / len(times)

    # warmup
    for _ in range(5):
        rope.char_at(idxs[0])

    results.update({
        "char_at_s":      measure(rope.char_at, [(i,) for i in idxs]),
        "merge_s":        measure(merge, [(rope, other)] * num_ops),
        "materialize_s":  measure(rope.materialize, [()] * max(1, num_ops // 100)),
    })

    # appends mutate the rope, keep them last
    chained = Rope(text, max_leaf_capacity=capacity)
    results["append_rope_s"] = measure(chained.append_rope, [(other,)] * num_ops)
    results["append_range_s"] = measure(
        lambda b, e: rope.append_range(text, b, e), chunks)
    results["height_after_range"] = rope.height()
    results["height_after_rope"] = chained.height()
    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark Rope")
    parser.add_argument(
        "--sizes", "-n", type=int, nargs="+", required=True,
        help="Lengths of the random texts to test"
    )
    parser.add_argument(
        "--capacity", "-c", type=int, default=1024,
        help="Maximum leaf capacity"
    )
    parser.add_argument(
        "--queries", "-q", type=int, default=5000,
        help="Number of random queries per operation"
    )

    args = parser.parse_args()

    all_results = []
    random.seed(42)
    for length in args.sizes:
        all_results.append(benchmark(length, args.capacity, args.queries))

    df = pd.DataFrame(all_results)
    print(df.to_string(index=False))


if __name__ == "__main__":
    main()


# chmod +x benchmark.py
# /usr/bin/time -v python3 benchmark.py --sizes 100000 1000000 10000000 --capacity 512 --queries 10000
