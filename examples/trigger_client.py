"""Post batches to the server started by ``sum_server.py``."""

from dyfunc.client import BatchClient

URL = "http://localhost:5001/call-remote"

if __name__ == "__main__":
    with BatchClient(URL, username="admin", password="secret") as client:
        print(client.send("a", "sum", [2, 3]))
        print(
            client.send_batch(
                [
                    {"id": "q", "func": "divmod_", "args": [17, 5]},
                    {"id": "w", "func": "wrap8", "args": [200]},
                    {"id": "m", "func": "midpoint", "args": [{"x": 0, "y": 0}, {"x": 2, "y": 4}]},
                    {"func": "missing"},
                ]
            )
        )
