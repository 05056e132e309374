import logging
from typing import Optional

from glimpse.config import DEFAULT_FILENAME
from glimpse.models import AnalysisResult, ScriptIdentifiers
from glimpse.services.compiler import BindingOracle
from glimpse.services.document import TextDocument
from glimpse.services.options_api.analyzer import analyze_options_api
from glimpse.services.script_setup_analysis import analyze_script_setup
from glimpse.services.sfc_parser import SFCDescriptor, parse_sfc
from glimpse.services.template_analysis import analyze_template

logger = logging.getLogger(__name__)


class VueFileAnalyzer:
    """
    One full pass over a `.vue` document: parse, classify the script, resolve
    template occurrences. Every failure propagates to the caller.
    """

    def __init__(self, oracle: Optional[BindingOracle] = None):
        self.oracle = oracle or BindingOracle()

    def __call__(self, document: TextDocument) -> AnalysisResult:
        return self.analyze(document)

    def analyze(self, document: TextDocument) -> AnalysisResult:
        parsed = parse_sfc(document.text, filename=document.uri or DEFAULT_FILENAME)
        for diagnostic in parsed.errors:
            logger.warning("%s: %s (offset %d)", document.uri, diagnostic.message, diagnostic.offset)

        descriptor = parsed.descriptor
        identifiers = self.classify(descriptor)

        template = descriptor.template
        return analyze_template(template.ast if template is not None else None, identifiers, document)

    def classify(self, descriptor: SFCDescriptor) -> ScriptIdentifiers:
        if descriptor.script_setup is not None:
            bindings = self.oracle.compile(descriptor)
            setup = descriptor.script_setup
            return analyze_script_setup(bindings, setup.content, lang=setup.lang)
        if descriptor.script is not None:
            script = descriptor.script
            return analyze_options_api(script.content, lang=script.lang)
        return ScriptIdentifiers()


_analyzer = None


def get_analyzer() -> VueFileAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = VueFileAnalyzer()
    return _analyzer


def analyze_vue_file(text: str, document: Optional[TextDocument] = None) -> AnalysisResult:
    """Analyze `text` once, without caching."""
    if document is None:
        document = TextDocument(DEFAULT_FILENAME, 0, text)
    return get_analyzer().analyze(document)
