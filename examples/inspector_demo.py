from __future__ import annotations

from broadcast import (
    Affinity,
    BroadcastMessage,
    NotificationCenter,
    QueueHomeContext,
    Subscription,
    create_notification_center,
)


class Inspector:
    def __init__(self, broker: NotificationCenter, name: str):
        self.broker = broker
        self.name = name

    def speak(self, message: str):
        self.broker.publish_message(BroadcastMessage[InspectorMessage](InspectorMessage(message, self)))


class InspectorMessage:
    def __init__(self, message: str, owner: Inspector):
        self.message = message
        self.owner = owner


class Headquarter:
    """Listens to every inspector except Bob; prints on the home thread."""

    def __init__(self, broker: NotificationCenter):
        self.subscription = broker.subscribe(
            BroadcastMessage[InspectorMessage],
            self.handle_notification,
            condition=lambda msg: msg.content.owner.name != "Bob",
            affinity=Affinity.HOME,
        )

    def close(self):
        self.subscription.unsubscribe()

    def handle_notification(self, message: BroadcastMessage[InspectorMessage], subscription: Subscription):
        print(f"Inspector {message.content.owner.name} says: {message.content.message}")


def main():
    home = QueueHomeContext(name="demo-ui")
    home.start()

    broker = create_notification_center(home_context=home)
    headquarters = Headquarter(broker)

    bob = Inspector(broker, "Bob")
    jill = Inspector(broker, "Jill")
    jim = Inspector(broker, "Jim")

    bob.speak("Hello there!")
    jim.speak("I'm another inspector!")
    jill.speak("Mission accomplished.")

    headquarters.close()
    jim.speak("Anyone still listening?")

    print("stats>", broker.stats())
    broker.shutdown()
    home.stop(timeout=1.0)


if __name__ == "__main__":
    main()
