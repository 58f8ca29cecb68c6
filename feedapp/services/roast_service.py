"""Template-based receipt roasts and the roast-video stub."""
import logging
import random
from typing import Dict, Iterable, List, Optional

from ..errors import ValidationError

logger = logging.getLogger('fetchfeed.roasts')

HEALTHY_KEYWORDS = ('organic', 'salad', 'yogurt', 'chicken breast')
DAIRY_KEYWORDS = ('milk', 'yogurt', 'cheese', 'eggs')
BREAKFAST_KEYWORDS = ('eggs', 'bread', 'milk', 'yogurt', 'juice')
CARB_KEYWORDS = ('pasta', 'bread', 'rice')

# Receipt used by the share screen when no scan is supplied.
DEFAULT_ITEMS = [
    {'name': 'Organic Bananas', 'price': 3.49},
    {'name': 'Whole Milk (1 Gallon)', 'price': 4.99},
    {'name': 'Greek Yogurt', 'price': 5.99},
    {'name': 'Bread - Whole Wheat', 'price': 3.29},
    {'name': 'Eggs (Dozen)', 'price': 4.49},
    {'name': 'Orange Juice', 'price': 5.49},
    {'name': 'Chicken Breast (2 lbs)', 'price': 12.99},
    {'name': 'Mixed Salad Greens', 'price': 4.29},
    {'name': 'Tomatoes', 'price': 3.99},
    {'name': 'Pasta - Penne', 'price': 2.49},
]


def _count_matching(names: List[str], keywords: Iterable[str]) -> int:
    keywords = tuple(keywords)
    return sum(1 for name in names if any(k in name for k in keywords))


def _normalise_items(items) -> List[Dict]:
    if not isinstance(items, list):
        raise ValidationError('receiptItems must be a list')
    result = []
    for item in items:
        if not isinstance(item, dict) or not item.get('name'):
            raise ValidationError('each receipt item needs a name and a price')
        try:
            price = float(item.get('price', 0))
        except (TypeError, ValueError):
            raise ValidationError(f"invalid price for {item.get('name')!r}")
        result.append({'name': str(item['name']), 'price': price})
    return result


def generate_roasts(items: List[Dict]) -> List[Dict]:
    """Build every roast whose rule matches the receipt *items*.

    Always returns at least one roast; a receipt that trips no rule gets
    the generic one (``id`` 9).
    """
    items = _normalise_items(items)
    roasts: List[Dict] = []
    total = sum(i['price'] for i in items)
    names = [i['name'].lower() for i in items]

    expensive = next((i for i in items if i['price'] > 10), None)
    if expensive:
        roasts.append({
            'id': 1,
            'text': f"${expensive['price']:.2f} for {expensive['name']}? "
                    "Someone's living their best life! 💅",
            'emoji': '💎', 'color': '#8B5CF6',
        })

    healthy = _count_matching(names, HEALTHY_KEYWORDS)
    if healthy >= 3:
        roasts.append({
            'id': 2,
            'text': f"{healthy} healthy items? Are you okay? "
                    "Who forced you to be an adult? 🥗",
            'emoji': '🥗', 'color': '#10B981',
        })

    if total > 40:
        roasts.append({
            'id': 3,
            'text': f"${total:.2f} total... and here I am eating ramen. "
                    "Living different lives! 💸",
            'emoji': '💰', 'color': '#F59E0B',
        })
    elif total < 30:
        roasts.append({
            'id': 3,
            'text': f"Only ${total:.2f}? Either you're budgeting or just forgot to eat 😅",
            'emoji': '🛒', 'color': '#EC4899',
        })

    dairy = _count_matching(names, DAIRY_KEYWORDS)
    if dairy >= 3:
        roasts.append({
            'id': 4,
            'text': f"{dairy} dairy items... Your bones must be STRONG STRONG 🦴",
            'emoji': '🥛', 'color': '#3B82F6',
        })

    if len(items) >= 10:
        roasts.append({
            'id': 5,
            'text': f"{len(items)} items!? This receipt is longer than my attention span 📜",
            'emoji': '📋', 'color': '#EF4444',
        })
    elif len(items) <= 5:
        roasts.append({
            'id': 5,
            'text': f"Only {len(items)} items? What is this, a sample menu? 🍽️",
            'emoji': '🛍️', 'color': '#F97316',
        })

    if _count_matching(names, BREAKFAST_KEYWORDS) >= 4:
        roasts.append({
            'id': 6,
            'text': "Full breakfast setup! Look at you, actually eating breakfast "
                    "like a responsible human 🍳",
            'emoji': '🍳', 'color': '#FBBF24',
        })

    if _count_matching(names, CARB_KEYWORDS) >= 2:
        roasts.append({
            'id': 7,
            'text': "Carb loading I see... Training for a marathon or just "
                    "living your best life? 🍝",
            'emoji': '🍝', 'color': '#F43F5E',
        })

    if _count_matching(names, ('organic',)) >= 1:
        roasts.append({
            'id': 8,
            'text': '"Organic" bananas... We get it, you care about the planet 🌍',
            'emoji': '🌱', 'color': '#22C55E',
        })

    if not roasts:
        roasts.append({
            'id': 9,
            'text': "Pretty basic shopping trip... but hey, at least you're eating! 🤷",
            'emoji': '🛒', 'color': '#6B7280',
        })
    return roasts


class RoastService:
    """Serves roasts for a receipt and fronts the roast-video endpoint.

    No video provider is wired up, so :meth:`request_video` validates its
    input and reports the feature as unavailable.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, items: Optional[List[Dict]] = None) -> List[Dict]:
        return generate_roasts(DEFAULT_ITEMS if items is None else items)

    def pick(self, items: Optional[List[Dict]] = None) -> Dict:
        """Return one matching roast at random."""
        return self._rng.choice(self.generate(items))

    def next_roast(self, items: Optional[List[Dict]], current_id: int) -> Dict:
        """Return the roast after *current_id*, wrapping to the first.

        An unknown *current_id* yields the first roast.
        """
        roasts = self.generate(items)
        ids = [r['id'] for r in roasts]
        if current_id not in ids:
            return roasts[0]
        return roasts[(ids.index(current_id) + 1) % len(roasts)]

    def request_video(self, roast_text: str, items) -> Dict:
        """Validate a roast-video request.

        Returns:
            A response dict with ``success`` ``False`` and a ``message``
            explaining that no video provider is configured.

        Raises:
            ValidationError: missing ``roastText`` or malformed items.
        """
        if not roast_text or not str(roast_text).strip():
            raise ValidationError('roastText is required')
        items = _normalise_items(items if items is not None else [])
        logger.info("Roast video requested for %d receipt items", len(items))
        return {
            'success': False,
            'videoUrl': None,
            'audioUrl': None,
            'message': 'Roast video generation is not configured on this server',
            'error': 'Roast video generation unavailable',
        }
