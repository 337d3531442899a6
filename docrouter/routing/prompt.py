"""AI routing prompt"""

from docrouter.models import FileSignature
from docrouter.templates.registry import get_available_folders, get_template_structure_text


def build_routing_prompt(signature: FileSignature, template: str,
                         preview_chars: int = 200) -> str:
    """
    Prompt asking the model to pick one folder of ``template`` for a file

    The prompt embeds the file signature, the annotated template structure
    and the exact list of valid folders, and demands a bare JSON answer.

    Raises:
        TemplateNotFoundError: If the template is not registered
    """
    folders = get_available_folders(template)
    structure = get_template_structure_text(template)
    folder_list = "\n".join(f"• {folder}/" for folder in folders)

    preview_line = ""
    if signature.content_preview and preview_chars > 0:
        preview = signature.content_preview[:preview_chars]
        preview_line = f"\n- Content preview (first {preview_chars} chars): {preview}..."

    return f"""You are an expert Italian structural engineer specializing in engineering project management and document classification.

ANALYZE THIS FILE:
- Filename: {signature.file_name}
- Extension: {signature.extension}
- MIME Type: {signature.mime_type}
- Size: {signature.size_bytes} bytes{preview_line}

PROJECT TEMPLATE: {template}
{structure}

CRITICAL TEMPLATE CONSTRAINT:
- This project uses the {template} template
- ONLY suggest folders that exist in the {template} template structure
- NEVER suggest folders from other templates

AVAILABLE FOLDERS FOR {template} TEMPLATE (CHOOSE ONLY FROM THIS EXACT LIST):
{folder_list}

CLASSIFICATION INSTRUCTIONS:
1. Analyze filename, extension, and content semantically
2. Identify the engineering document type (drawings, reports, calculations, communications, permits, etc.)
3. Select EXACTLY ONE folder path from the available list above
4. Provide detailed technical reasoning based on Italian engineering best practices
5. Suggest 2-3 alternative folder paths from the available list

STRICT JSON RESPONSE FORMAT - NO OTHER TEXT:
{{
  "suggestedPath": "EXACT_FOLDER_FROM_LIST/",
  "confidence": 0.95,
  "reasoning": "Detailed analysis: document type, content evaluation, logical placement in engineering workflow",
  "alternatives": ["ALTERNATIVE1/", "ALTERNATIVE2/"]
}}

CRITICAL: Only use folders from the exact available list above. Never create new folder names. Confidence must be 0.0-1.0 decimal."""
