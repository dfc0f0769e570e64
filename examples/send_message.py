import sys
import httpx

URL = "http://127.0.0.1:8088/analyze"

payload = {
    "session_id": "demo-1",
    "role": "user",
    "message": " ".join(sys.argv[1:]) or "I feel like nothing is real anymore. Is this a simulation?",
}

def main() -> None:
    r = httpx.post(URL, json=payload, timeout=10)
    r.raise_for_status()
    reading = r.json()["reading"]
    print(reading["phase"], reading["paradigm_state"], reading["safety"]["risk_level"])
    if reading["crisis"]:
        print(reading["crisis"]["type"], reading["crisis"]["severity"], reading["crisis"]["immediate_action"])

if __name__ == "__main__":
    main()
