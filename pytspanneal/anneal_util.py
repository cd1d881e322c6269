import logging
import numpy as np
import os


class AnnealContext:
    def __init__(self, d, e, y, c, s, w, l):
        self.dtype = d
        self.epsilon = e
        self.decay = y
        self.cooling_interval = c
        self.sample_interval = s
        self.max_workers = w
        self.log_level = l


dtype_bits = int(os.getenv('PYTSPANNEAL_FPPOW', '6'))
if dtype_bits <= 5:
    dtype = np.float32
    epsilon = 2 ** -23
else:
    dtype = np.float64
    epsilon = 2 ** -52

decay = float(os.getenv('PYTSPANNEAL_DECAY', '0.999'))
cooling_interval = int(os.getenv('PYTSPANNEAL_COOLING_INTERVAL', '100'))
sample_interval = int(os.getenv('PYTSPANNEAL_SAMPLE_INTERVAL', '100'))
max_workers = int(os.getenv('PYTSPANNEAL_MAX_WORKERS', str(os.cpu_count() or 1)))


def log_level_from_name(name):
    # Unknown names fall back to WARNING
    name = str(name).strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name

    return "WARNING"


log_level = log_level_from_name(os.getenv('PYTSPANNEAL_LOG_LEVEL', 'WARNING'))

logger = logging.getLogger("pytspanneal")
logger.addHandler(logging.NullHandler())
logger.setLevel(log_level)

anneal_context = AnnealContext(dtype, epsilon, decay, cooling_interval, sample_interval, max_workers, log_level)
