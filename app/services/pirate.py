"""
Pirate speech transformation and intensity to voice parameter mapping.
"""
import enum
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional


class Emotion(str, enum.Enum):
    """Emotions accepted by the speech provider that we use."""
    neutral = 'neutral'
    happy = 'happy'
    angry = 'angry'


@dataclass(frozen=True)
class VoiceParameters:
    """
    Synthesis parameters derived from intensity.

    Pitch is a multiplier around 1.0 (0.9 - 1.2), not a semitone offset.
    """
    emotion: Emotion
    pitch: float
    speed: float

    def to_input(self) -> dict:
        return {
            'emotion': self.emotion.value,
            'pitch': self.pitch,
            'speed': self.speed,
        }


# Single-pass substitutions so replaced words are never matched again
PIRATE_WORDS: Dict[str, str] = {
    'you': 'ye',
    'your': 'yer',
    'my': 'me',
    'is': 'be',
    'are': 'be',
    'over': "o'er",
    'to': 'ter',
    'and': "an'",
    'for': 'fer',
    'the': "th'",
}

_PIRATE_WORDS_RE = re.compile(
    r'\b(' + '|'.join(sorted(PIRATE_WORDS, key=len, reverse=True)) + r')\b',
    re.IGNORECASE,
)

_EXPRESSIONS_LOW = ['Ahoy there', 'Well met, matey', 'Greetings, sailor']
_EXPRESSIONS_MEDIUM = ['Arrr, matey', 'Avast ye', 'Shiver me timbers', 'Yo ho ho']
_EXPRESSIONS_HIGH = [
    'Batten down the hatches',
    'Blast ye, scurvy dog',
    "By Blackbeard's beard",
    'Scallywag',
]
_EXPRESSIONS_EXTREME = [
    'Blast yer black heart',
    'Ye scurvy bilge rat',
    "By Davy Jones' locker",
    'Curse ye to the depths',
    'Arrr, ye mangy sea dog',
]


def get_voice_parameters(intensity: int) -> VoiceParameters:
    """Map intensity (1-10) to one of four fixed parameter buckets."""
    if intensity <= 3:
        return VoiceParameters(emotion=Emotion.neutral, pitch=0.9, speed=0.9)
    if intensity <= 6:
        return VoiceParameters(emotion=Emotion.happy, pitch=1.0, speed=1.0)
    if intensity <= 8:
        return VoiceParameters(emotion=Emotion.angry, pitch=1.1, speed=1.1)
    return VoiceParameters(emotion=Emotion.angry, pitch=1.2, speed=1.2)


def get_pirate_expressions(intensity: int) -> List[str]:
    """Stock phrases for the intensity bucket."""
    if intensity <= 3:
        return list(_EXPRESSIONS_LOW)
    if intensity <= 6:
        return list(_EXPRESSIONS_MEDIUM)
    if intensity <= 8:
        return list(_EXPRESSIONS_HIGH)
    return list(_EXPRESSIONS_EXTREME)


def _replace_word(match: re.Match) -> str:
    word = match.group(0)
    replacement = PIRATE_WORDS[word.lower()]
    if word[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def piratify_words(text: str) -> str:
    """Apply the word substitutions only."""
    return _PIRATE_WORDS_RE.sub(_replace_word, text)


def transform_to_pirate_speak(text: str, intensity: int, rng: Optional[random.Random] = None) -> str:
    """
    Turn text into pirate speak.

    Substitutes common words, then prepends or appends one expression from the
    intensity bucket. Output is random unless a seeded `rng` is passed in.

    Args:
        text: Input text
        intensity: 1-10, selects the expression bucket
        rng: Source of randomness (defaults to the module-level generator)

    Returns:
        The transformed text
    """
    rng = rng or random
    pirate_text = piratify_words(text)

    expression = rng.choice(get_pirate_expressions(intensity))
    if rng.random() < 0.5:
        return f'{expression} {pirate_text}'
    return f'{pirate_text}, {expression.lower()}'
