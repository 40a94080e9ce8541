from typing import List, Tuple


class InMemoryRedis:
    """Minimal stand-in for the two redis calls the cart lock makes."""

    def __init__(self):
        self.store = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def get(self, name):
        return self.store.get(name)

    def eval(self, script, numkeys, key, token):
        # compare-and-delete, same contract as the Lua release script
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


class RecordingNotifier:
    def __init__(self):
        self.sent: List[Tuple[int, int]] = []

    def send_order_notification(self, user_id: int, order_id: int):
        self.sent.append((user_id, order_id))
