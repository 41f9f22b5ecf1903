#!/usr/bin/env python3
import argparse
import random
import time
import resource
import pandas as pd

from balanced_rope import Rope

def split_lines(text: str):
    """
    (begin, end) bounds of every line in `text`, newline included.
    """
    bounds = []
    begin = 0
    while begin < len(text):
        end = text.find('\n', begin)
        end = len(text) if end == -1 else end + 1
        bounds.append((begin, end))
        begin = end
    return bounds

def benchmark_text(text: str, capacity: int, num_ops: int) -> dict:
    n = len(text)

    mem0 = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    t0w  = time.perf_counter()
    t0c  = time.process_time()
    rope = Rope(text, max_leaf_capacity=capacity)
    build_wall = time.perf_counter() - t0w
    build_cpu  = time.process_time()  - t0c
    mem1       = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss

    # the same text again, one line at a time
    lines = split_lines(text)
    t0w = time.perf_counter()
    by_line = Rope(max_leaf_capacity=capacity)
    for begin, end in lines:
        by_line.append_range(text, begin, end)
    line_wall = time.perf_counter() - t0w

    idxs = [random.randrange(n) for _ in range(num_ops)] if n else []

    # timing helper
    def measure(r, qs):
        if not qs:
            return None

        # timed runs
        times = []
        for i in qs:
            st = time.perf_counter()
            r.char_at(i)
            times.append(time.perf_counter() - st)
        return sum(times) / len(times)

    t0w = time.perf_counter()
    flat = by_line.materialize()
    materialize_wall = time.perf_counter() - t0w

    res = {
        "n_chars":           n,
        "n_lines":           len(lines),
        "capacity":          capacity,
        "build_wall":        build_wall,
        "build_cpu":         build_cpu,
        "build_rss":         mem1 - mem0,
        "height":            rope.height(),
        "line_append_wall":  line_wall,
        "line_height":       by_line.height(),
        "char_at_s":         measure(rope, idxs),
        "line_char_at_s":    measure(by_line, idxs),
        "materialize_wall":  materialize_wall,
        "round_trip_ok":     flat == text,
    }

    peak_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    res["peak_rss_kb"] = peak_rss

    return res

def main():
    parser = argparse.ArgumentParser(description="Benchmark Rope on a text file")
    parser.add_argument("text_file", help="Path to a UTF-8 text file")
    parser.add_argument("--capacity", "-c", type=int, default=1024,
                        help="Maximum leaf capacity")
    parser.add_argument("--queries", "-q", type=int, default=5000,
                        help="Number of random char_at queries")
    args = parser.parse_args()

    with open(args.text_file, encoding="utf-8") as f:
        text = f.read()

    random.seed(42)
    result = benchmark_text(text, args.capacity, args.queries)

    df = pd.DataFrame([result])
    print(df.to_string(index=False))

if __name__ == "__main__":
    main()
