"""Hebrew reply templates and operator notification rendering."""

from typing import Any, Optional

from mavrikan.services.identity_service import format_display_phone
from mavrikan.services.input_parser import ITEM_LABELS, MULTIPLE_ITEMS_LABEL
from mavrikan.services.state_machine import MULTIPLE_ITEMS, FlowState, ItemKind

MSG_WELCOME = """✨ *ברוכים הבאים להמבריקן!* ✨

🧹 שירותי ניקוי מקצועיים לספות, שטיחים, מזרנים, כורסאות וריפודים.

נשמח לעזור ולתת לכם הצעת מחיר מדויקת 💰

📍 *מהיכן אתם?*
_(אנחנו נותנים שירות בחיפה, הקריות והצפון בלבד)_"""

MSG_ITEM_SELECTION = """👍 מעולה!

🛋️ *איזה פריט תרצו לנקות?*

1️⃣ ספה
2️⃣ מזרן
3️⃣ שטיח
4️⃣ כמה פריטים יחד

_(שלחו את מספר האפשרות או שם הפריט)_"""

MSG_MATTRESS_TYPE = """🛏️ *איזה סוג מזרן יש לכם?*

1️⃣ יחיד
2️⃣ זוגי
3️⃣ קינג סייז"""

MSG_MATTRESS_BOTH_SIDES = """🔄 *האם יש צורך בניקוי משני הצדדים?*

1️⃣ כן ✅
2️⃣ לא ❌"""

MSG_MATTRESS_STAINS = """🔍 *האם יש כתמים קשים וריח לא טוב?*
_(שתן, דם וכדומה)_

1️⃣ כן ✅
2️⃣ לא ❌"""

MSG_MATTRESS_AGE = """⏰ *כמה זמן המזרן בשימוש?*

_(לדוגמה: שנה, 3 שנים, חדש)_"""

MSG_MATTRESS_PHOTO = """📸 *אנא שלחו תמונה של המזרן*

לקבלת אבחון והצעת מחיר מדויקת 💰"""

MSG_SOFA_TYPE = """🛋️ *איזה סוג ספה יש לכם?*

1️⃣ ספה סטנדרטית
2️⃣ שזלונג "ר"
3️⃣ מערכת ישיבה גדולה
4️⃣ ספה מלבנית"""

MSG_SOFA_PHOTO = """📸 *אנא שלחו תמונה של הספה*

לקבלת אבחון והצעת מחיר מדויקת 💰

💡 _חשוב: הצעת מחיר מבוססת על גודל הספה, מצב הלכלוך והכתמים, והאם הכריות נשלפות או קבועות_"""

MSG_CARPET_TYPE = """🧶 *איזה סוג שטיח יש לכם?*

1️⃣ שטיח שאגי
2️⃣ שטיח סינטתי
3️⃣ שטיח וינטג׳ / מודרני
4️⃣ שטיח עבודת יד (צמר / כותנה)
5️⃣ שטיח מקיר לקיר"""

MSG_CARPET_SIZE = """📏 *מה גודל השטיח?*

_(לדוגמה: 2x3 מטר, קטן, גדול)_"""

MSG_CARPET_PHOTO = """📸 *אנא שלחו תמונה של השטיח*

לקבלת אבחון והצעת מחיר מדויקת 💰"""

MSG_MULTIPLE_ITEMS = """📦 *אילו פריטים תרצו לנקות?*

1️⃣ ספה 🛋️
2️⃣ מזרן 🛏️
3️⃣ שטיח 🧶

_(שלחו מספרים מופרדים בפסיק, למשל: 1,2)_"""

MSG_PHOTO_SKIP_HINT = '_(אין תמונה? שלחו 0 או "דלג" כדי להמשיך)_'

MSG_THANK_YOU = """🎉 *תודה רבה!*

נציג יחזור אליכם בהקדם עם הצעת מחיר 💰

_המבריקן - ניקיון שמבריק!_ ✨"""

MSG_NOT_UNDERSTOOD = """🤔 לא הבנתי את התשובה

אנא בחרו אחת מהאפשרויות"""

QUESTIONS: dict[FlowState, str] = {
    FlowState.AWAITING_LOCATION: MSG_WELCOME,
    FlowState.AWAITING_ITEM: MSG_ITEM_SELECTION,
    FlowState.MATTRESS_TYPE: MSG_MATTRESS_TYPE,
    FlowState.MATTRESS_BOTH_SIDES: MSG_MATTRESS_BOTH_SIDES,
    FlowState.MATTRESS_STAINS: MSG_MATTRESS_STAINS,
    FlowState.MATTRESS_AGE: MSG_MATTRESS_AGE,
    FlowState.MATTRESS_PHOTO: MSG_MATTRESS_PHOTO,
    FlowState.SOFA_TYPE: MSG_SOFA_TYPE,
    FlowState.SOFA_PHOTO: MSG_SOFA_PHOTO,
    FlowState.CARPET_TYPE: MSG_CARPET_TYPE,
    FlowState.CARPET_SIZE: MSG_CARPET_SIZE,
    FlowState.CARPET_PHOTO: MSG_CARPET_PHOTO,
    FlowState.MULTIPLE_SELECT: MSG_MULTIPLE_ITEMS,
}

# (question, example) shown when an answer could not be matched
CONTEXT_HINTS: dict[FlowState, tuple[str, str]] = {
    FlowState.AWAITING_LOCATION: ("מהיכן אתם?", "לדוגמה: חיפה, קריות, עכו"),
    FlowState.AWAITING_ITEM: ("איזה פריט תרצו לנקות?", "שלחו 1 לספה, 2 למזרן, 3 לשטיח, או 4 לכמה פריטים"),
    FlowState.MATTRESS_TYPE: ("איזה סוג מזרן?", "שלחו 1 ליחיד, 2 לזוגי, 3 לקינג סייז"),
    FlowState.MATTRESS_BOTH_SIDES: ("האם ניקוי משני הצדדים?", "שלחו 1 לכן, 2 ללא"),
    FlowState.MATTRESS_STAINS: ("האם יש כתמים קשים?", "שלחו 1 לכן, 2 ללא"),
    FlowState.MATTRESS_AGE: ("כמה זמן המזרן בשימוש?", "לדוגמה: שנה, 3 שנים, חדש"),
    FlowState.SOFA_TYPE: ("איזה סוג ספה?", "שלחו מספר 1-4"),
    FlowState.CARPET_TYPE: ("איזה סוג שטיח?", "שלחו מספר 1-5"),
    FlowState.CARPET_SIZE: ("מה גודל השטיח?", "לדוגמה: 2x3 מטר, קטן, גדול"),
    FlowState.MULTIPLE_SELECT: ("אילו פריטים?", "שלחו מספרים מופרדים בפסיק, למשל: 1,2"),
}

_DETAIL_LINES = (
    ("variant", "📌 סוג"),
    ("size", "📏 גודל"),
    ("both_sides", "🔄 שני צדדים"),
    ("stains", "🔍 כתמים"),
    ("age", "⏰ זמן שימוש"),
)


def item_label(item_type: str) -> str:
    if item_type == MULTIPLE_ITEMS:
        return MULTIPLE_ITEMS_LABEL
    try:
        return ITEM_LABELS[ItemKind(item_type)]
    except ValueError:
        return item_type


def context_error(user_input: str, state: FlowState) -> str:
    """Re-ask the current question with an example of a valid answer."""
    hint = CONTEXT_HINTS.get(state)
    if not hint:
        return MSG_NOT_UNDERSTOOD
    question, example = hint
    return f"""🤔 לא הבנתי "{user_input}"

❓ *{question}*

💡 _{example}_"""


def photo_reprompt(state: FlowState) -> str:
    return f"{QUESTIONS[state]}\n\n{MSG_PHOTO_SKIP_HINT}"


def item_transition(from_item: ItemKind, to_item: ItemKind) -> str:
    return f"""✅ סיימנו עם ה{ITEM_LABELS[from_item]}!

עכשיו נמשיך ל{ITEM_LABELS[to_item]} 👇"""


def starting_with(item: ItemKind) -> str:
    return f"👍 מעולה! נתחיל עם {ITEM_LABELS[item]}"


def photo_caption(name: str) -> str:
    return f"תמונה מ-{name}"


def _detail_lines(details: dict[str, Any], indent: str = "") -> list[str]:
    return [f"{indent}{label}: {details[key]}" for key, label in _DETAIL_LINES if details.get(key)]


def format_details(details: Optional[dict[str, Any]]) -> str:
    """Render lead details: one block per item for combined leads, plain lines otherwise."""
    if not details:
        return "_אין_"

    items = details.get("items")
    if isinstance(items, list):
        blocks = []
        for index, item in enumerate(items, start=1):
            lines = [f"*פריט {index}:* {item_label(str(item.get('type', '')))}"]
            lines.extend(_detail_lines(item, indent="  "))
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks) or "_אין_"

    return "\n".join(_detail_lines(details)) or "_אין_"


def render_owner_notification(
    *,
    name: str,
    phone: str,
    location: Optional[str],
    item_type: str,
    item_details: Optional[dict[str, Any]],
    photos: list[str],
) -> str:
    text = f"""🔔 *ליד חדש!*

👤 *שם:* {name}
📞 *טלפון:* {format_display_phone(phone)}
📍 *מיקום:* {location or '-'}
🛋️ *פריט:* {item_label(item_type)}

📋 *פרטים נוספים:*
{format_details(item_details)}"""
    if photos:
        text += f"\n\n📸 *תמונות:* {len(photos)}"
    return text
