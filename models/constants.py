STARTER_CRIMES = [
    {"name": "Beg on the streets", "min_reward": 1, "max_reward": 10, "success_rate": 0.9, "cooldown_seconds": 10, "xp_reward": 1},
    {"name": "Pickpocket someone", "min_reward": 5, "max_reward": 20, "success_rate": 0.75, "cooldown_seconds": 20, "xp_reward": 2},
    {"name": "Rob a small shop", "min_reward": 20, "max_reward": 100, "success_rate": 0.6, "cooldown_seconds": 30, "xp_reward": 5},
    {"name": "Car theft", "min_reward": 100, "max_reward": 500, "success_rate": 0.4, "cooldown_seconds": 60, "xp_reward": 12},
    {"name": "Bank heist", "min_reward": 1000, "max_reward": 5000, "success_rate": 0.2, "cooldown_seconds": 120, "xp_reward": 40},
]

STARTER_CARS = [
    {"name": "Stolen Bike", "price": 100},
    {"name": "Used Sedan", "price": 1000},
    {"name": "Sports Car", "price": 10000},
    {"name": "Armored Truck", "price": 50000},
]

STARTER_PROPERTIES = [
    {"name": "Bullet Factory", "price": 10000, "income_per_hour": 500},
    {"name": "Casino", "price": 50000, "income_per_hour": 3000},
    {"name": "Nightclub", "price": 20000, "income_per_hour": 1200},
]

# (label, minimum xp); the first threshold must be 0.
RANKS = [
    ("Street Rat", 0),
    ("Pickpocket", 50),
    ("Thug", 150),
    ("Hustler", 400),
    ("Enforcer", 1000),
    ("Made Man", 2500),
    ("Capo", 6000),
    ("Underboss", 15000),
    ("Boss", 40000),
    ("Godfather", 100000),
]

# Consolation xp on a failed crime is capped at this share of the success award.
MAX_FAILURE_XP_RATIO = 0.25

LEADERBOARD_FIELDS = ("xp", "money", "successful_crimes")
LEADERBOARD_MAX = 100
