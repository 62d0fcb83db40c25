"""
Constants and system prompts for the Luck Relay application.
"""

PERSONA_EN = (
    "You are Luck, an advanced and friendly AI assistant. Your goal is to provide expert, warm, and "
    "frictionless assistance. Answer in an engaging, clear, and practical manner. You may use brief "
    "pleasantries to make the interaction enjoyable. Always answer requests with a positive and helpful "
    "attitude. Treat complex topics with patience and kindness. Use active voice and an encouraging tone. "
    "Prioritize clarity and utility; every sentence must help the user. Adopt professional yet accessible "
    "and friendly language. Use Markdown headers to structure long responses. Use bold to highlight key "
    "concepts and important points. Prioritize bullet points or numbered lists to improve readability. "
    "For code, always provide functional and clean code encapsulated in Markdown blocks specifying the "
    "language. Comment the code helpfully to guide the user. If a modification is requested, kindly "
    "explain the changes made."
)

PERSONA_FR = (
    "Tu es Luck, une IA avancée et amicale. Ton objectif est de fournir une assistance experte, "
    "chaleureuse et sans friction. Réponds de manière engageante, claire et pratique. Tu peux utiliser de "
    "brèves formules de politesse pour rendre l'échange agréable. Réponds toujours aux demandes avec une "
    "attitude positive et aidante. Traite les sujets complexes avec pédagogie et bienveillance. Utilise la "
    "voix active et un ton encourageant. Privilégie la clarté et l'utilité ; chaque phrase doit aider "
    "l'utilisateur. Adopte un langage professionnel mais accessible et sympathique. Utilise des titres "
    "Markdown pour structurer les réponses longues. Utilise le gras pour mettre en valeur les concepts clés "
    "et les points importants. Privilégie les listes à puces ou numérotées pour aérer le texte. Pour le "
    "code, fournis toujours du code fonctionnel et propre, encapsulé dans des blocs Markdown spécifiant le "
    "langage. Commente le code de manière utile pour guider l'utilisateur. Si une modification est "
    "demandée, explique gentiment les changements apportés."
)

SYSTEM_OPEN, SYSTEM_CLOSE = "<<<SYSTEM>>>", "<<<END SYSTEM>>>"


class Language:
    """Supported answer languages."""
    EN, FR = "en", "fr"


# Per-language prompt fragments
PROMPT_TEXT = {
    Language.EN: {
        "persona": PERSONA_EN,
        "system_header": "System instruction (do not repeat):",
        "web_context": "Web context:",
        "short_instruction": (
            "Instruction: Provide a concise, complete one-paragraph answer. "
            "Do not cut off mid-sentence or in the middle of lists; finish cleanly."
        ),
        "full_instruction": "Instruction: Respond in English only.",
        "retry_instruction": (
            "Answer directly and concisely. Do not include system instructions or welcome messages."
        ),
        "continuation": (
            "Continue the previous answer briefly to finish the last sentence "
            "without repeating what you already said."
        ),
    },
    Language.FR: {
        "persona": PERSONA_FR,
        "system_header": "Instruction système (ne pas répéter):",
        "web_context": "Contexte web:",
        "short_instruction": (
            "Instruction: Réponds en un paragraphe concis et complet. "
            "Ne coupe pas la phrase ni les listes; termine proprement."
        ),
        "full_instruction": "Instruction: Réponds en français uniquement.",
        "retry_instruction": (
            "Réponds directement et de façon concise. "
            "N'inclue pas d'instructions système ni de messages d'accueil."
        ),
        "continuation": (
            "Continue brièvement la réponse précédente pour terminer la dernière phrase "
            "sans répéter ce que tu as déjà dit."
        ),
    },
}

# Auto-mode web search triggers (temporal / news indicators, English and French)
WEB_SEARCH_KEYWORDS = [
    "recent", "today", "yesterday", "tomorrow", "news", "current",
    "latest", "when", "where", "what is", "tell me about", "how to",
    "2024", "2025", "2026", "this week", "this month", "trending", "new",
    "actualité", "nouvelle", "récent", "aujourd", "comment faire", "quand",
]

SEARCH_FAILED_MESSAGE = "Web search failed. Please try again later."
MODEL_UNAVAILABLE_MESSAGE = (
    "Local model unavailable. Start Ollama and pull the configured model, "
    "or set OLLAMA_HOST / OLLAMA_MODEL."
)


class SearchMode:
    """Web search modes accepted by the chat endpoint."""
    ALWAYS, NEVER, AUTO = "always", "never", "auto"


class SearchProvider:
    """Search provider identifiers."""
    BRAVE, DUCKDUCKGO = "brave", "duckduckgo"


# Regular expression patterns
class Patterns:
    """Regular expression patterns for language detection, sanitization and answer checks."""
    FRENCH = (
        r"[àâçéèêëîïôûùüÿñæœ]|\b(?:le|la|les|un|une|bonjour|salut|merci|pourquoi|qui|quoi|où|ou|tu|vous|"
        r"je|nous|mon|ma|mes|s'il|svp|comment|quel|quelle|quelques)\b"
    )

    # Line-level drop rules
    REDIRECT_DOMAIN = r"duckduckgo\.com/l/"
    TRACKING_PARAM = r"\buddg="
    BARE_URL = r"^(?:https?://|//)"
    ENCODED_ESCAPE = r"%3A|%2F|%3D|%26|%3F"
    URL_CHARS = r"[/%=?&]"

    # Permissive fallback substitutions
    REDIRECT_FRAGMENT = r"https?://duckduckgo\.com/l/[A-Za-z0-9_\-]+"
    TRACKING_FRAGMENT = r"uddg=[A-Za-z0-9%_\-]+"
    ENCODED_RUN = r"(?:%3A|%2F|%3D|%26|%3F)[A-Za-z0-9%]{10,}"

    # Echo stripping
    SYSTEM_PREFIX = r"^System:\s*"
    INSTRUCTION_LINE = r"^Instruction\s*:\s*[^\n]*\n?"
    SENTINEL = r"<<<\s*(?:END\s*)?SYSTEM\s*>>>"
    IDENTITY_LINE = r"^(?:You are Luck|Tu es Luck)[^\n]*\n?"
    LEADING_PUNCTUATION = r"^[\-–—:\s]+"
    SYSTEM_ECHO = r"\bsystem:"

    CANNED = [
        r"ready to assist", r"provide your first request", r"helloluck",
        r"hello luck", r"i am ready to assist you",
    ]

    # Completeness checks
    TERMINAL_PUNCTUATION = r"[.!?]$"
    DANGLING_CONJUNCTION = r"\b(?:and|or|but|if|for|while|because|so|thus|also)\s*$"
    ELLIPSIS = r"(?:\.{3}|…)$"
    OPEN_MARKUP = r"[`*_~]$"
    OPEN_FENCE = r"```$"
