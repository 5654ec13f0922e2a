"""
Certificate Page Renderer.

Renders a human-readable HTML page for a publication certificate using a
Jinja2 template. The page shows only what the certificate's disclosure level
already reveals, plus the live verification result.
"""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..integrity.checkpointer import VerificationResult
from ..records import Certificate


class CertificateRenderer:
    """
    Render certificates as standalone HTML pages.

    A ``certificate.html`` in template_dir overrides the embedded template.
    """

    TEMPLATE_NAME = "certificate.html"

    # Default HTML template (embedded for portability)
    DEFAULT_TEMPLATE = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ payload.title or "Writing Process Certificate" }}</title>
    <style>
        :root {
            --primary: #1a365d;
            --accent: #3182ce;
            --danger: #e53e3e;
            --success: #38a169;
            --background: #f7fafc;
            --text: #2d3748;
        }

        * { box-sizing: border-box; margin: 0; padding: 0; }

        body {
            font-family: 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: var(--text);
            background: var(--background);
        }

        .container {
            max-width: 800px;
            margin: 0 auto;
            padding: 2rem;
            background: white;
        }

        header {
            text-align: center;
            padding: 1.5rem;
            border-bottom: 3px solid var(--primary);
            margin-bottom: 2rem;
        }

        header h1 { color: var(--primary); font-size: 1.8rem; }

        section { margin: 1.5rem 0; }

        section h2 {
            color: var(--primary);
            border-bottom: 2px solid var(--accent);
            padding-bottom: 0.5rem;
            margin-bottom: 1rem;
        }

        table { width: 100%; border-collapse: collapse; font-size: 0.9rem; }
        th, td { padding: 0.6rem; text-align: left; border-bottom: 1px solid #e2e8f0; }
        th { width: 35%; color: var(--primary); }

        .hash-value {
            font-family: monospace;
            font-size: 0.8rem;
            background: #edf2f7;
            padding: 0.25rem 0.5rem;
            border-radius: 4px;
            word-break: break-all;
        }

        .status {
            padding: 1rem;
            border-radius: 8px;
            font-weight: 600;
        }

        .status.valid { border-left: 4px solid var(--success); background: #f0fff4; }
        .status.invalid { border-left: 4px solid var(--danger); background: #fff5f5; }

        footer {
            margin-top: 2rem;
            padding-top: 1rem;
            border-top: 2px solid var(--primary);
            text-align: center;
            font-size: 0.85rem;
            color: #718096;
        }
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>{{ payload.title or "Writing Process Certificate" }}</h1>
            {% if payload.author %}<p>by {{ payload.author.name }}</p>{% endif %}
            <p>Disclosure level: {{ certificate.disclosure_level.value }}</p>
        </header>

        <section>
            <h2>Verification</h2>
            {% if result %}
            <div class="status {{ 'valid' if result.is_valid else 'invalid' }}">
                {{ "Verified" if result.is_valid else "Verification failed" }}
                {% if result.witness_status %}(witness: {{ result.witness_status }}){% endif %}
            </div>
            {% if result.errors %}
            <ul>
                {% for error in result.errors %}<li>{{ error }}</li>{% endfor %}
            </ul>
            {% endif %}
            {% endif %}
        </section>

        <section>
            <h2>Commitment</h2>
            <table>
                <tr><th>Certificate</th><td>{{ certificate.id }}</td></tr>
                <tr><th>Document</th><td>{{ certificate.document_id }}</td></tr>
                <tr><th>Merkle root</th><td><span class="hash-value">{{ certificate.merkle_root }}</span></td></tr>
                {% if payload.proof.witnessType %}
                <tr><th>Witness</th><td>{{ payload.proof.witnessType }}</td></tr>
                <tr><th>Witness proof</th><td><span class="hash-value">{{ payload.proof.witnessProof }}</span></td></tr>
                {% endif %}
            </table>
        </section>

        {% if payload.writingProcess %}
        <section>
            <h2>Writing Process</h2>
            <table>
                <tr><th>Entries</th><td>{{ payload.writingProcess.entryCount }}</td></tr>
                <tr><th>Started</th><td>{{ payload.writingProcess.startDate }}</td></tr>
                <tr><th>Last entry</th><td>{{ payload.writingProcess.endDate }}</td></tr>
                <tr><th>Checkpoints</th><td>{{ payload.writingProcess.checkpointCount }}</td></tr>
                <tr><th>AI assistance</th><td>{{ "yes" if payload.writingProcess.aiAssistance else "no" }}</td></tr>
            </table>
        </section>
        {% endif %}

        {% if payload.proof.inclusionProofs %}
        <section>
            <h2>Inclusion Proofs</h2>
            <table>
                {% for name, proof in payload.proof.inclusionProofs.items() %}
                <tr>
                    <th>{{ name }}</th>
                    <td><span class="hash-value">{{ proof.leaf_hash }}</span> ({{ proof.sibling_path|length }} steps)</td>
                </tr>
                {% endfor %}
            </table>
        </section>
        {% endif %}

        <footer>
            <p>Verify at {{ certificate.public_url }}</p>
            <p>Issued {{ certificate.created_at.strftime('%Y-%m-%d %H:%M UTC') }}</p>
        </footer>
    </div>
</body>
</html>'''

    def __init__(self, template_dir: Path | None = None):
        """
        Initialize renderer.

        Args:
            template_dir: Directory containing Jinja2 templates
        """
        self.template_dir = template_dir

        if template_dir and template_dir.exists():
            self.env = Environment(
                loader=FileSystemLoader(str(template_dir)),
                autoescape=select_autoescape(["html", "xml"]),
            )
        else:
            self.env = Environment(autoescape=select_autoescape(["html", "xml"], default_for_string=True))

    def render(self, certificate: Certificate, result: VerificationResult | None = None) -> str:
        """
        Render a certificate page.

        Args:
            certificate: Stored certificate
            result: Live verification result to display

        Returns:
            HTML string
        """
        if self.template_dir and (self.template_dir / self.TEMPLATE_NAME).exists():
            template = self.env.get_template(self.TEMPLATE_NAME)
        else:
            template = self.env.from_string(self.DEFAULT_TEMPLATE)

        context: dict[str, Any] = {
            "certificate": certificate,
            "payload": certificate.proof_payload,
            "result": result,
        }
        return template.render(**context)
