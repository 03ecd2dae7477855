class Messages:
    """Тексты бота."""

    class Common:
        START = "👋 Welcome! Choose an application to start:"
        NO_FLOWS = "There are no open applications right now. Please come back later."
        FLOW_NOT_FOUND = "😕 This application was not found or is closed. Here are the open ones:"
        NO_SESSION = "You have no application in progress. Send /start to begin."
        CANCELLED = "Application cancelled. Send /start to begin again."
        RESTARTED = "Starting over."
        SESSION_TIMEOUT = "⏳ Your session expired. Send /start to begin again."
        INVALID_INPUT = "❌ Invalid input. Please try again."
        INTERNAL_ERROR = "❌ Internal error. Please try again later."
        SERVICE_UNAVAILABLE = "⚠️ The service is temporarily unavailable. Please try again later."

    class Wizard:
        BACK = "⬅️ Back"
        NEXT = "Next ➡️"
        SUBMIT = "✅ Submit"
        FIX_ERRORS = "Please fix the highlighted fields."
        ENTER_ANSWER = "✏️ Send your answer for: <b>{question}</b>"
        ENTER_PHONE = "📞 Send your phone number for: <b>{question}</b> (with country code, e.g. +1 555 123 4567)"
        UPLOAD_FILE = "📎 Send a file for: <b>{question}</b>"
        UPLOAD_IMAGE = "🖼️ Send an image for: <b>{question}</b>"
        ANSWER_SAVED = "✅ Saved."
        FILE_EXPECTED = "Please send a file, or /cancel to stop."
        NOT_ACTUAL = "This screen is no longer active."
        EMPTY_FLOW = "This application has no steps yet."

    class Completion:
        FEEDBACK_ASK = "⭐ How was your experience? Rate it from 1 to 5."
        FEEDBACK_COMMENT = "💬 Anything else to share? Send a comment or press Skip."
        FEEDBACK_SKIP = "Skip"
        SUBMITTED = "✅ Your application has been submitted."
        START_NEW = "🔁 Start a new application"

    class Assessment:
        BEST = "✔"
        WORST = "✘"
        PICK_BOTH = "Select one ✔ and one ✘ to continue."
        TYPE_ANSWER = "✏️ Type your answer and send it as a message."

    class Scheduler:
        TITLE = "📅 Select a date & time"
        PICK_DATE = "Available days are marked. Pick a date, then a time."
        UNAVAILABLE = "This day is not available."
        DURATION = "⏱ {minutes} min"
        CONFIRMED = "Interview: {date} at {time} ({timezone})"

    class Video:
        START = "⏺ Start recording"
        STOP = "⏹ Stop"
        RETRY = "🔁 Retake"
        NEXT = "Next question ➡️"
        FINISH = "Finish ✅"
        PREVIOUS = "⬅️ Previous"
        COUNTDOWN = "Recording starts in {seconds}s"
        RECORDING = "🔴 Recording {elapsed} / time left {remaining}"
        RECORDED = "✅ Answer recorded"

    class Authoring:
        FLOWS_HEADER = "<b>Flows</b>"
        FLOW_LINE = "{status} <code>{slug}</code> {name} ({steps} steps)"
        OVERRIDE_USAGE = "Usage: /override &lt;slug&gt; &lt;module_id&gt; &lt;json&gt;"
        OVERRIDE_SAVED = "✅ Overrides for <code>{module}</code> saved."
        OVERRIDE_FAILED = "❌ Could not save overrides: {error}"
        LOGO_USAGE = "Usage: /logo &lt;slug&gt;, then send the image (or /logo &lt;slug&gt; &lt;url&gt;)."
        LOGO_SEND = "🖼️ Send the logo image for <code>{slug}</code>."
        LOGO_SAVED = "✅ Logo updated."
        LOGO_FAILED = "❌ Could not update logo: {error}"
        TEMPLATE_USAGE = "Usage: /newtemplate &lt;name&gt;"
        TEMPLATE_CREATED = "✅ Template <b>{name}</b> created with component <code>{component}</code>."
        TEMPLATE_FAILED = "❌ Could not create template: {error}"
        DUPLICATE_USAGE = "Usage: /duplicate &lt;slug&gt;"
        DUPLICATED = "✅ Inactive copy created: <code>{slug}</code>."
        DUPLICATE_FAILED = "❌ Could not duplicate flow: {error}"
        FLOW_NOT_FOUND = "Flow <code>{slug}</code> not found."
