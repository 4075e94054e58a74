# agents/instant_reflex.py
class InstantReflex:
    """Reaches for a chair the moment the music stops."""

    def delay(self, participant_id, round_number):
        return 0.0
