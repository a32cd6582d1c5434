"""User-facing texts. Kept in one place so copy changes don't touch flow logic."""

WELCOME = "👋 Welcome to the Higgs Domino Top Up bot!\n\nWhat would you like to do?"
MENU_TOPUP = "💎 Top Up Higgs Domino"
MENU_STATUS = "🔎 Check Order Status"

ASK_ACCOUNT_ID = "🎮 Enter your Higgs Domino User ID (example: 123456789):"
EMPTY_ACCOUNT_ID = "⚠️ User ID cannot be empty. Enter your Higgs Domino User ID:"
ACCOUNT_ID_SET = "✅ User ID set: {target_account_id}\n\n💰 Choose an amount:"
CHOOSE_AMOUNT_WITH_BUTTONS = "👇 Please choose an amount using the buttons above."
USE_CONFIRM_BUTTONS = "👇 Please confirm or cancel using the buttons above."

CONFIRM_ORDER = (
    "📋 Order Confirmation\n"
    "━━━━━━━━━━━━━━━━━━\n"
    "🎮 User ID: {target_account_id}\n"
    "💰 Amount: {amount_code}\n"
    "━━━━━━━━━━━━━━━━━━"
)
CONFIRM_BUTTON = "✅ Confirm"
CANCEL_BUTTON = "❌ Cancel"

PROCESSING = "⏳ Processing your order..."
ORDER_CREATED = "✅ Order created!\n\n🧾 Ref ID: {ref_id}\n📌 Initial status: {status}"
PROVIDER_FAILED = "❌ Something went wrong while contacting the provider. Please try again later."
ORDER_NOT_RECORDED = (
    "⚠️ Your order could not be recorded.\n"
    "Please contact support with Ref ID: {ref_id}"
)
CANCELLED = "🛑 Order cancelled."

NOTHING_TO_CONFIRM = "🤔 No order found. Start again with /start."
NOTHING_TO_CANCEL = "🤔 There is no pending order to cancel. Start again with /start."
RESTART = "🤔 Please start from /start and choose Top Up first."

ASK_REF_ID = "🧾 Enter your order Ref ID:"
EMPTY_REF_ID = "⚠️ Ref ID cannot be empty. Enter your order Ref ID:"
ORDER_STATUS = (
    "📦 Order {ref_id}\n"
    "📌 Status: {status}\n"
    "💰 Amount: {amount_code}\n"
    "🎮 User: {target_account_id}"
)
REF_ID_NOT_FOUND = "❌ Ref ID not found."
LOOKUP_FAILED = "⚠️ Something went wrong while looking up your order. Please try again later."

ORDER_UPDATE = "🔔 Order update {ref_id}\n📌 Status: {status}"
GENERIC_ERROR = "⚠️ Something went wrong. Please try again with /start."
