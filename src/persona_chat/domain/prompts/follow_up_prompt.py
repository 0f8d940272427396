FOLLOW_UP_PROMPT = (
    "Based on the conversation history, generate 3 relevant follow-up questions that the user might want "
    "to ask next. Make them concise and directly related to the conversation context."
)
