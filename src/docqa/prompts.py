FALLBACK_ANSWER = "The information is not available in the provided context."

GROUNDED_ANSWER_TEMPLATE = (
    "You are an assistant that answers questions based on the provided context.\n"
    "Use ONLY the information from the context below to answer the question.\n"
    'If the information is not available in the context, say "' + FALLBACK_ANSWER + '"\n'
    "\n"
    "Context:\n"
    "{context}"
)

RESUME_REVIEW_TEMPLATE = """You are an expert resume reviewer with extensive experience in hiring and career coaching.
Analyze the following resume content and provide a comprehensive review.

Resume Content:
{context}

Please provide:
1. Overall Score (1-10): Rate the resume's overall quality
2. Strengths: List 3-5 key strengths
3. Areas for Improvement: List 3-5 areas that need work
4. Specific Suggestions: Provide actionable recommendations
5. ATS Compatibility: Comment on how well this resume would perform with Applicant Tracking Systems
6. Industry Alignment: Assess how well the resume fits typical industry standards

Format your response in a structured manner with clear sections."""

RESUME_RETRIEVAL_QUERY = "resume skills experience education"

RESUME_REVIEW_REQUEST = "Review the resume above."


def render_system_instruction(template: str, context: str) -> str:
    # str.replace rather than format(): document text may contain braces
    return template.replace("{context}", context)
