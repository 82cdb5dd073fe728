"""Product constants shared by the client core and the CLI."""

NEW_SITE_COST = 5  # credits
CREDIT_INTERVAL_SECONDS = 5.0
CREDIT_INCREMENT = 1

MAX_MAIL_IDENTITIES = 3
MAIL_DOMAIN = "boongle.com"
LOCALPART_PATTERN = r"^[a-z0-9._-]+$"

MAILBOX_FOLDERS = ("inbox", "sent", "trash", "archive")

ALLOWED_FILE_EXTENSIONS = (".html", ".css", ".js")

DEFAULT_FILES = {
    "index.html": """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>My Awesome Site</title>
    <link rel="stylesheet" href="styles.css">
</head>
<body class="bg-gray-100 text-gray-800">
    <div class="container mx-auto p-4 text-center">
        <h1 class="text-4xl font-bold text-blue-600">Hello, World!</h1>
        <p class="mt-2 text-lg">This is my QuickHost site.</p>
        <img src="https://picsum.photos/400/200" alt="Placeholder Image" class="mx-auto my-4 rounded shadow-lg">
        <button id="myButton" class="px-4 py-2 bg-blue-500 text-white rounded hover:bg-blue-700">Click Me</button>
    </div>
    <script src="script.js"></script>
</body>
</html>""",
    "styles.css": """body {
    font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
    margin: 0;
    padding: 0;
    line-height: 1.6;
}

.container {
    max-width: 800px;
}
""",
    "script.js": """console.log("Site script loaded!");

document.addEventListener('DOMContentLoaded', () => {
    const button = document.getElementById('myButton');
    if (button) {
        button.addEventListener('click', () => {
            alert('Button clicked!');
        });
    }
});
""",
}

# The three default files cannot be deleted
RESERVED_FILE_NAMES = frozenset(DEFAULT_FILES)
