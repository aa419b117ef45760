# app/services/tips.py
"""Financial tips shown on the member dashboard."""
import random
from typing import Dict, List, Optional

STREAK = "streak"
MONEY = "money"
GROWTH = "growth"
CATEGORIES = (STREAK, MONEY, GROWTH)

FINANCIAL_TIPS: List[Dict[str, str]] = [
    {"category": STREAK, "content": "Building a savings streak is like building muscle: consistent small efforts compound into big results!"},
    {"category": STREAK, "content": "People with 30+ day savings streaks are far more likely to reach their goals."},
    {"category": STREAK, "content": "Challenge yourself: try to keep your savings streak going for 100 days."},
    {"category": STREAK, "content": "Every day you contribute, you are building a stronger financial future!"},
    {"category": STREAK, "content": "Each day you save is one day closer to financial independence."},
    {"category": STREAK, "content": "Discipline today = Freedom tomorrow. Keep building that streak!"},
    {"category": STREAK, "content": "Consistency wins: superior returns come from consistent, disciplined saving."},
    {"category": MONEY, "content": '"A penny saved is a penny earned." - Benjamin Franklin. Start small, think big.'},
    {"category": MONEY, "content": '"The best time to plant a tree was 20 years ago. The second best time is now." - Chinese Proverb'},
    {"category": MONEY, "content": '"Money is not the goal. Freedom is the goal." Save with purpose.'},
    {"category": MONEY, "content": '"If you do not find a way to make money while you sleep, you will work until you die." - Warren Buffett'},
    {"category": MONEY, "content": '"Compound interest is the eighth wonder of the world. He who understands it, earns it."'},
    {"category": MONEY, "content": '"You must gain control over your money or the lack of it will forever control you." - Dave Ramsey'},
    {"category": MONEY, "content": '"An investment in knowledge pays the best interest." Keep learning about finances!'},
    {"category": MONEY, "content": '"The stock market is a device for transferring money from the impatient to the patient." - Warren Buffett'},
    {"category": GROWTH, "content": "Track your progress weekly. Seeing your savings grow is incredibly motivating!"},
    {"category": GROWTH, "content": "Understand your spending patterns. You can't improve what you don't measure."},
    {"category": GROWTH, "content": "Your future self will thank you for every contribution you make today."},
    {"category": GROWTH, "content": "Consistent small savings beat sporadic large deposits."},
    {"category": GROWTH, "content": "Small consistent actions lead to incredible results over time."},
    {"category": GROWTH, "content": "Break your savings goal into monthly targets. It makes it achievable."},
    {"category": GROWTH, "content": "Every morning is a chance to make a positive financial decision."},
    {"category": GROWTH, "content": "Find unique ways to save. Every shilling counts toward your dreams."},
    {"category": GROWTH, "content": "Celebrate small wins along the way. You're doing great!"},
]


def tips_by_category(category: str) -> List[Dict[str, str]]:
    return [t for t in FINANCIAL_TIPS if t["category"] == category]


def random_tip(category: Optional[str] = None, rng: Optional[random.Random] = None) -> Dict[str, str]:
    pool = tips_by_category(category) if category else FINANCIAL_TIPS
    return (rng or random).choice(pool)

