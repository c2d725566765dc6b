"""Instruction templates and generation settings for every gateway call."""


# ============================================================================
# Text interpretation
# ============================================================================

TEXT_INTERPRET_PROMPT = """Act as a digital linguist and internet historian. The following fragment was written in informal online language (slang, abbreviations, leetspeak, chat shorthand).

Fragment:
---
{text}
---

Reconstruct what the author most likely meant. Then:
1. Give up to 3 alternative readings, each with a confidence (0-100)
2. Identify the era of internet culture the language belongs to
3. Identify the online community or platform it most likely comes from
4. Expand every slang term or abbreviation with its meaning
5. Explain your reasoning briefly

Return ONLY valid JSON in this exact structure:
{{
  "mostLikely": "string",
  "confidence": number (0-100),
  "alternatives": [{{"text": "string", "confidence": number (0-100)}}],
  "era": "string",
  "community": "string",
  "keyTerms": [{{"original": "string", "expanded": "string", "meaning": "string"}}],
  "reasoning": "string"
}}"""


# ============================================================================
# Audio transcription and reconstruction
# ============================================================================

TRANSCRIBE_PROMPT = (
    "Transcribe this audio accurately. Handle poor quality audio, background noise, "
    "fast speech, unclear pronunciation, accents, multiple speakers, and damaged "
    "recordings. Provide the best possible transcription despite audio quality issues. "
    "Include all speech, even if unclear or overlapping."
)

TRANSCRIBE_GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 32,
    "topP": 1,
    "maxOutputTokens": 8192,
}

RECONSTRUCT_PROMPT = """Act as an expert analyst and communication specialist. Your task is to deeply analyze the following transcription and provide comprehensive insights.

First, reconstruct the transcription by:
1. Expanding all slang, abbreviations, and informal language into proper full context
2. Correcting grammar and structure while preserving original meaning
3. Clarifying unclear references and providing context
4. Organizing information coherently for better readability

Then, provide a detailed analysis including:
1. Key Themes: Main ideas and recurring concepts (be specific and insightful)
2. Important Entities: People, places, organizations, products mentioned (with brief context)
3. Communication Style: Tone, formality level, and speaking patterns
4. Contextual Insights: Cultural references, technical terms, or domain-specific elements
5. Sentiment Analysis: Overall emotional tone and key emotional shifts
6. Action Items: Any tasks, decisions, or follow-ups mentioned

Original Transcription:
{transcription}

Format your response exactly as:
===RECONSTRUCTED TEXT===
[Full, clear, properly formatted version]

===KEY THEMES===
[Detailed themes with brief explanations]

===IMPORTANT ENTITIES===
[Entities with context]

===COMMUNICATION STYLE===
[Tone, formality, and patterns]

===CONTEXTUAL INSIGHTS===
[Cultural, technical, or domain references]

===SENTIMENT ANALYSIS===
[Emotional tone and shifts]

===ACTION ITEMS===
[Any tasks or decisions]"""

RECONSTRUCT_GENERATION_CONFIG = {
    "temperature": 0.3,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 8192,
}

# Section marker -> Reconstruction field
RECONSTRUCTION_SECTIONS = {
    "RECONSTRUCTED TEXT": "reconstructed_text",
    "KEY THEMES": "key_topics",
    "IMPORTANT ENTITIES": "entities",
    "COMMUNICATION STYLE": "communication_style",
    "CONTEXTUAL INSIGHTS": "context_notes",
    "SENTIMENT ANALYSIS": "sentiment_analysis",
    "ACTION ITEMS": "action_items",
}
RECONSTRUCTION_LIST_SECTIONS = ("KEY THEMES", "IMPORTANT ENTITIES")


# ============================================================================
# Context enrichment
# ============================================================================

CONTEXT_PROMPT = """Act as a research specialist. Given the following topics and entities from a transcription, provide 4-6 highly relevant and insightful contextual sources.

Topics and Entities: {terms}

For each topic/entity, provide:
1. An engaging title that captures the essence
2. A comprehensive 3-4 sentence explanation with key insights
3. Clear relevance to understanding the transcription context
4. Any interesting connections or implications

Format your response as a JSON array with objects containing: title, snippet, relevance_score (0-1)

Example format:
[
  {{
    "title": "Understanding [Topic]: Key Insights and Implications",
    "snippet": "Detailed explanation with insights...",
    "relevance_score": 0.95
  }}
]

Provide ONLY the JSON array, no additional text."""

TEXT_CONTEXT_PROMPT = """Act as an internet historian and research librarian. A slang-laden text fragment has been reconstructed as:

{terms}

Provide 4-6 contextual reference sources that help explain the language, the era and the community it comes from.

For each source provide:
1. A descriptive title
2. A 2-3 sentence snippet summarising what the source explains
3. A credibility rating (0-1) for how authoritative this kind of source is
4. A one-sentence reason why it is relevant to the fragment
5. A relevance score (0-1)

Format your response as a JSON array with objects containing: title, snippet, credibility, relevance_reason, relevance_score

Provide ONLY the JSON array, no additional text."""

MAX_CONTEXT_TERMS = 5


# ============================================================================
# Image analysis
# ============================================================================

IMAGE_ANALYSIS_PROMPT = """You are a digital archaeologist analyzing historical internet artifacts. Analyze this image comprehensively and provide a detailed archaeological report in JSON format.

Your analysis should include:

1. **Era Identification**: Determine the approximate time period (e.g., "Early Web 1.0 (1995-2000)", "Web 2.0 Peak (2006-2010)", "Mobile-First Era (2012-2016)", "Modern Era (2017-present)")

2. **Platform Detection**: Identify the platform, application, or website shown. Include version details if recognizable.

3. **Design Analysis**: Analyze visual design elements including:
   - Color schemes and palettes
   - Typography choices
   - Layout patterns (tables, grids, flexbox indicators)
   - UI paradigms (skeuomorphic, flat, material design, etc.)
   - Notable design trends of that era

4. **Cultural Context**: Provide historical and cultural significance:
   - What was happening in tech/internet culture at this time
   - Social/cultural movements reflected in the design
   - User behavior patterns this design encouraged
   - How this artifact fits into internet history

5. **Technical Observations**: Note technical details such as:
   - Screen resolution indicators
   - Browser chrome/UI elements
   - Technology stack hints (Flash, Java applets, HTML tables, CSS frameworks)
   - Performance considerations visible in the design

6. **Authenticity Assessment**: Evaluate if this is an original artifact, recreation, or modern interpretation

7. **Historical Significance**: Rate the significance (1-10) and explain why this artifact matters to internet history

Return ONLY valid JSON in this exact structure:
{
  "era": {"period": "string", "yearRange": "string", "confidence": "high/medium/low"},
  "platform": {"name": "string", "type": "string (website/application/OS/game/etc)", "version": "string or null"},
  "design": {
    "colorScheme": "string description",
    "typography": "string description",
    "layoutStyle": "string description",
    "designParadigm": "string (skeuomorphic/flat/etc)",
    "notableElements": ["array of strings"]
  },
  "cultural": {
    "historicalContext": "string (2-3 sentences)",
    "culturalSignificance": "string (2-3 sentences)",
    "userBehaviorPatterns": "string (1-2 sentences)"
  },
  "technical": {
    "resolution": "string or null",
    "browserIndicators": "string or null",
    "technologyStack": ["array of strings"],
    "performanceNotes": "string or null"
  },
  "authenticity": {"assessment": "original/recreation/modern/unclear", "confidence": "high/medium/low", "reasoning": "string"},
  "significance": {"rating": "number (1-10)", "explanation": "string (2-3 sentences)"},
  "summary": "string (A compelling 2-3 sentence summary of the artifact's importance)"
}"""

_STRING = {"type": "STRING"}
_NULLABLE_STRING = {"type": "STRING", "nullable": True}
_STRING_LIST = {"type": "ARRAY", "items": {"type": "STRING"}}

IMAGE_REPORT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "era": {"type": "OBJECT", "properties": {
            "period": _STRING, "yearRange": _STRING, "confidence": _STRING}},
        "platform": {"type": "OBJECT", "properties": {
            "name": _STRING, "type": _STRING, "version": _NULLABLE_STRING}},
        "design": {"type": "OBJECT", "properties": {
            "colorScheme": _STRING, "typography": _STRING, "layoutStyle": _STRING,
            "designParadigm": _STRING, "notableElements": _STRING_LIST}},
        "cultural": {"type": "OBJECT", "properties": {
            "historicalContext": _STRING, "culturalSignificance": _STRING,
            "userBehaviorPatterns": _STRING}},
        "technical": {"type": "OBJECT", "properties": {
            "resolution": _NULLABLE_STRING, "browserIndicators": _NULLABLE_STRING,
            "technologyStack": _STRING_LIST, "performanceNotes": _NULLABLE_STRING}},
        "authenticity": {"type": "OBJECT", "properties": {
            "assessment": _STRING, "confidence": _STRING, "reasoning": _STRING}},
        "significance": {"type": "OBJECT", "properties": {
            "rating": {"type": "INTEGER"}, "explanation": _STRING}},
        "summary": _STRING,
    },
    "required": ["era", "platform", "design", "cultural", "technical",
                 "authenticity", "significance", "summary"],
}


# ============================================================================
# Follow-up chat
# ============================================================================

CHAT_FOCUS = {
    "audio": (
        "Focus on the transcription, reconstructed text, key topics, entities, "
        "and other audio-specific insights."
    ),
    "text": (
        "Focus on the reconstructed text, era, community, key terms, "
        "and other text-specific insights."
    ),
    "image": (
        "Focus on the era, platform, design elements, cultural context, "
        "and other image-specific insights."
    ),
}

CHAT_PROMPT = """You are an AI assistant helping users {subject} results.
Use the following context to answer the user's question accurately and helpfully:

{context}

User's question: {message}

Please provide a clear, concise, and helpful response{about}.{focus}"""

CHAT_SUBJECT = "understand their {modality} analysis"
CHAT_ABOUT = " about the {modality} analysis"
GENERIC_CHAT_SUBJECT = "with their analysis"
NO_CONTEXT = "No specific context provided."

CHAT_APOLOGY = "Sorry, I encountered an error while processing your request. Please try again."
