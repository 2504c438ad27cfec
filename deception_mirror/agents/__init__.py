from .deception_detector import run_deception_detector
from .debater import run_debater
from .speech import SpeechSynthesizer, get_synthesizer
