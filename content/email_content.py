import random

unsubscribe_banners = [
    "See you again soon 👋",
    "You're off the list, but the door is open 🚪",
    "Sorry to see you go 💜",
    "Thanks for being part of the journey ✨",
]

def get_random_unsubscribe_banner() -> str:
    return random.choice(unsubscribe_banners)
