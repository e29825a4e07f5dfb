# Text enhancement assistant
import logging

import requests

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_CONTEXT = "Instalação Elétrica Geral"

PROMPT_TEMPLATE = """
Você é um assistente técnico especialista em manutenção elétrica.
Melhore e torne mais técnica a seguinte descrição de uma demanda elétrica.

Contexto/Local: {context}
Descrição Original: "{description}"

Retorne apenas a descrição técnica aprimorada, sem introduções ou explicações. Use terminologia padrão da indústria elétrica (ABNT/NR-10 se aplicável).
"""


class GeminiService:
    """
    Rewrites demand descriptions with the Gemini API.

    Any failure degrades to returning the text unchanged.
    """

    def __init__(self, api_key: str, model: str, timeout: int = 30):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def enhance_description(self, current_description: str, context: str = "") -> str:
        if not current_description or not current_description.strip():
            return current_description
        if not self.api_key:
            logger.warning("GEMINI_API_KEY não configurada; descrição mantida.")
            return current_description

        prompt = PROMPT_TEMPLATE.format(context=context or DEFAULT_CONTEXT, description=current_description)
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        try:
            response = requests.post(GEMINI_URL.format(model=self.model), headers=headers, json=payload,
                                     timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except requests.exceptions.RequestException as e:
            logger.error(f"Erro ao chamar a API do Gemini: {e}", exc_info=True)
            return current_description
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Resposta inesperada da API do Gemini: {e}", exc_info=True)
            return current_description

        enhanced = (text or "").strip()
        return enhanced or current_description
