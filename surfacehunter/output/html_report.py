"""
HTML report generation with jinja2.
Renders one AnalysisResult as a single self-contained page.
"""

import os
import re
from datetime import datetime

from jinja2 import Environment, BaseLoader

from surfacehunter.models import AnalysisResult


HTML_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>SurfaceHunter Report - {{ result.target }}</title>
    <style>
        :root {
            --bg-primary: #0a0e14;
            --bg-secondary: #131820;
            --bg-card: #161d26;
            --text-primary: #e4e8ed;
            --text-secondary: #7a8694;
            --accent-blue: #3b82f6;
            --accent-green: #22c55e;
            --accent-yellow: #eab308;
            --accent-red: #ef4444;
            --accent-purple: #a855f7;
            --border-color: #2a3441;
        }

        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            line-height: 1.6;
        }

        .container { max-width: 1400px; margin: 0 auto; padding: 20px; }

        header {
            background: var(--bg-secondary);
            border-bottom: 1px solid var(--border-color);
            padding: 30px 0;
            margin-bottom: 30px;
        }

        header h1 { font-size: 2rem; font-weight: 700; color: var(--accent-blue); }
        header .meta { color: var(--text-secondary); font-size: 0.9rem; }

        .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 16px; margin-bottom: 30px; }
        .stat { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 8px; padding: 16px; }
        .stat .value { font-size: 1.8rem; font-weight: 700; }
        .stat .label { color: var(--text-secondary); font-size: 0.85rem; }

        section { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 8px; padding: 20px; margin-bottom: 24px; }
        section h2 { font-size: 1.2rem; margin-bottom: 12px; }

        table { width: 100%; border-collapse: collapse; font-size: 0.85rem; }
        th, td { text-align: left; padding: 6px 8px; border-bottom: 1px solid var(--border-color); vertical-align: top; }
        th { color: var(--text-secondary); font-weight: 600; }
        td.url { font-family: monospace; word-break: break-all; }

        .badge { display: inline-block; padding: 1px 8px; border-radius: 10px; font-size: 0.75rem; font-weight: 600; }
        .badge.high, .badge.critical { background: var(--accent-red); }
        .badge.medium { background: var(--accent-yellow); color: #000; }
        .badge.low { background: var(--border-color); }
        .badge.method { background: var(--accent-purple); }

        .empty { color: var(--text-secondary); font-style: italic; }
    </style>
</head>
<body>
    <header>
        <div class="container">
            <h1>SurfaceHunter Report</h1>
            <div class="meta">{{ result.target }} &middot; {{ result.source_type }} &middot; scan {{ result.scan_id }} &middot; generated {{ scan_time }}</div>
        </div>
    </header>

    <div class="container">
        <div class="stats">
            <div class="stat"><div class="value">{{ result.total_endpoints }}</div><div class="label">Endpoints</div></div>
            <div class="stat"><div class="value">{{ result.security_findings|length }}</div><div class="label">Security findings</div></div>
            <div class="stat"><div class="value">{{ result.ui_components|length }}</div><div class="label">UI components</div></div>
            <div class="stat"><div class="value">{{ result.permissions|length }}</div><div class="label">Permissions</div></div>
            <div class="stat"><div class="value">{{ result.files_scanned }}</div><div class="label">Files scanned</div></div>
            <div class="stat"><div class="value">{{ result.security_summary.get('ssl_issues', 0) }}</div><div class="label">Plaintext HTTP</div></div>
        </div>

        <section>
            <h2>Persistence operations</h2>
            <table>
                <tr>{% for op in persistence_ops %}<th>{{ op }}</th>{% endfor %}</tr>
                <tr>{% for op, count in persistence_ops.items() %}<td>{{ count }}</td>{% endfor %}</tr>
            </table>
        </section>

        <section>
            <h2>API endpoints</h2>
            {% if endpoints %}
            <table>
                <tr><th>Confidence</th><th>Method</th><th>URL</th><th>Operation</th><th>Payload</th><th>UI</th><th>Source</th></tr>
                {% for ep in endpoints %}
                <tr>
                    <td><span class="badge {{ ep.confidence }}">{{ ep.confidence }}</span></td>
                    <td><span class="badge method">{{ ep.method }}</span></td>
                    <td class="url">{{ ep.url }}</td>
                    <td>{{ ep.persistence_op or '-' }}</td>
                    <td>{{ ep.payload_indicators|join(', ') or '-' }}</td>
                    <td>{{ ep.ui_element or '' }}{% if ep.ui_text %} "{{ ep.ui_text }}"{% endif %}</td>
                    <td>{{ ep.source or ep.source_location }}</td>
                </tr>
                {% endfor %}
            </table>
            {% else %}
            <p class="empty">No endpoints discovered.</p>
            {% endif %}
        </section>

        <section>
            <h2>Security findings</h2>
            {% if findings %}
            <table>
                <tr><th>Severity</th><th>Kind</th><th>Description</th><th>Location</th><th>Evidence</th></tr>
                {% for f in findings %}
                <tr>
                    <td><span class="badge {{ f.severity }}">{{ f.severity }}</span></td>
                    <td>{{ f.kind }}</td>
                    <td>{{ f.description }}</td>
                    <td>{{ f.source_location }}</td>
                    <td class="url">{{ f.evidence or '' }}</td>
                </tr>
                {% endfor %}
            </table>
            {% else %}
            <p class="empty">No security findings.</p>
            {% endif %}
        </section>

        <section>
            <h2>UI components</h2>
            {% if ui_components %}
            <table>
                <tr><th>Kind</th><th>ID</th><th>Text</th><th>Listeners</th><th>Location</th></tr>
                {% for u in ui_components %}
                <tr>
                    <td>{{ u.kind }}</td>
                    <td>{{ u.id or 'unknown' }}</td>
                    <td>{{ u.text or '' }}</td>
                    <td>{{ u.listeners|join(', ') }}</td>
                    <td>{{ u.source_location }}</td>
                </tr>
                {% endfor %}
            </table>
            {% else %}
            <p class="empty">No interactive UI components.</p>
            {% endif %}
        </section>

        <section>
            <h2>Permissions &amp; libraries</h2>
            <table>
                <tr><th>Permissions</th><th>Libraries</th></tr>
                <tr>
                    <td>{% for p in result.permissions %}{{ p }}<br>{% else %}<span class="empty">none</span>{% endfor %}</td>
                    <td>{% for l in result.libraries %}{{ l }}<br>{% else %}<span class="empty">none</span>{% endfor %}</td>
                </tr>
            </table>
        </section>

        {% if scripts is not none %}
        <section>
            <h2>Scripts</h2>
            {% for s in scripts %}<div class="url">{{ s }}</div>{% else %}<p class="empty">No scripts.</p>{% endfor %}
        </section>

        <section>
            <h2>Database statements</h2>
            {% if statements %}
            <table>
                <tr><th>Operation</th><th>Statement</th><th>Source</th></tr>
                {% for s in statements %}
                <tr><td>{{ s.operation or '-' }}</td><td class="url">{{ s.statement }}</td><td>{{ s.source }}</td></tr>
                {% endfor %}
            </table>
            {% else %}
            <p class="empty">No SQL literals found.</p>
            {% endif %}
        </section>
        {% endif %}
    </div>
</body>
</html>
'''


class HTMLReportGenerator:

    def __init__(self):
        self.env = Environment(loader=BaseLoader(), autoescape=True)
        self.template = self.env.from_string(HTML_TEMPLATE)

    def render(self, result: AnalysisResult) -> str:
        data = result.to_dict()
        return self.template.render(
            result=result,
            scan_time=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            persistence_ops=data['persistence_ops'],
            endpoints=data['endpoints'],
            findings=data['security_findings'],
            ui_components=data['ui_components'],
            scripts=data.get('scripts'),
            statements=data.get('database_statements', []),
        )

    def generate(self, result: AnalysisResult, output_dir: str) -> str:
        html_content = self.render(result)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        safe_target = re.sub(r'[^A-Za-z0-9._-]+', '_', result.target).strip('_') or 'target'
        full_output_dir = os.path.join(output_dir, f"{safe_target}_{timestamp}")
        os.makedirs(full_output_dir, exist_ok=True)

        report_path = os.path.join(full_output_dir, 'report.html')
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(html_content)

        return report_path
