import sys

from notifier import PushNotifier
from subscriptions import CLASS_CANCELED_TOPIC, col_subscribers, get_db


def send_notifications(topic: str):
    db = get_db()
    try:
        return PushNotifier().dispatch(col_subscribers(db), topic)
    finally:
        db.client.close()


def main(argv) -> int:
    if len(argv) > 1:
        print("Usage: python notify.py [topic]")
        return 1

    topic = argv[0] if argv else CLASS_CANCELED_TOPIC
    report = send_notifications(topic)
    print("Topic:", report.topic, "Attempted:", report.attempted, "Delivered:", report.delivered)
    if report.failed:
        print("Failed:", ", ".join(str(u) for u in report.failed))
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
