from .config import get_firestore_client, initialize_firebase, FIREBASE_CONFIG
from .parsers import (
    TokenKind,
    CourseToken,
    parse_course_token,
    split_availability,
    format_availability,
    normalize_term_name,
    TERM_NAMES
)
from .quarters import QuarterManager
