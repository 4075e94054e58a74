# agents/random_reflex.py
import random

class RandomReflex:
    """
    Default scrambling player:
    - reacts after a uniformly random delay
    - the delay is capped well below the arbiter's default grace period
    """

    def __init__(self, max_delay=0.1):
        if max_delay < 0:
            raise ValueError("max_delay cannot be negative")
        self.max_delay = max_delay

    def delay(self, participant_id, round_number):
        return random.uniform(0.0, self.max_delay)
