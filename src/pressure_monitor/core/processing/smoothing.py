from typing import List, Sequence


def moving_average(data: Sequence[float], window_size: int) -> List[float]:
    """Mean of every contiguous window; a copy of the input when it is shorter than the window."""
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    values = list(data)
    if len(values) < window_size:
        return values
    return [
        sum(values[i:i + window_size]) / window_size
        for i in range(len(values) - window_size + 1)
    ]
