#!/usr/bin/env python3
"""
SurfaceHunter CLI - Static Attack-Surface Analysis
Archive analysis (APK/IPA/ZIP) and live web application scans.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from colorama import init, Fore, Style
init(autoreset=True)

from surfacehunter.core.config import get_default_config
from surfacehunter.core.errors import ScanError
from surfacehunter.core.logger import logger, set_verbose, set_silent
from surfacehunter.engine import SurfaceEngine
from surfacehunter.analyzers import patterns


def print_banner():
    banner = """
""" + Fore.CYAN + """╔═══════════════════════════════════════════════════════════════════╗
║                                                                   ║
║   """ + Fore.WHITE + """███████╗██╗   ██╗██████╗ ███████╗ █████╗  ██████╗███████╗   """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """██╔════╝██║   ██║██╔══██╗██╔════╝██╔══██╗██╔════╝██╔════╝   """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """███████╗██║   ██║██████╔╝█████╗  ███████║██║     █████╗     """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """╚════██║██║   ██║██╔══██╗██╔══╝  ██╔══██║██║     ██╔══╝     """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """███████║╚██████╔╝██║  ██║██║     ██║  ██║╚██████╗███████╗   """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """╚══════╝ ╚═════╝ ╚═╝  ╚═╝╚═╝     ╚═╝  ╚═╝ ╚═════╝╚══════╝   """ + Fore.CYAN + """║
║                                                                   ║
║   """ + Fore.GREEN + """Attack-Surface Hunter v1.0.0                               """ + Fore.CYAN + """║
║   """ + Fore.WHITE + """For authorized security testing only                        """ + Fore.CYAN + """║
║                                                                   ║
╚═══════════════════════════════════════════════════════════════════╝
""" + Style.RESET_ALL

    print(banner, flush=True)


def show_help():
    print(f"""
{Fore.CYAN}Usage:{Style.RESET_ALL}
    python cli.py <command> <target> [options]

{Fore.CYAN}Commands:{Style.RESET_ALL}
    {Fore.GREEN}analyze{Style.RESET_ALL}     Static analysis of an application archive (APK/IPA/ZIP)
    {Fore.GREEN}scan{Style.RESET_ALL}        Scan a live web application and its scripts
    {Fore.GREEN}batch{Style.RESET_ALL}       Run analyze/scan for every target listed in a file
    {Fore.GREEN}patterns{Style.RESET_ALL}    List the detection rule families

{Fore.CYAN}Options:{Style.RESET_ALL}
    -o, --output <dir>    Output directory (default: surface_output)
    -v, --verbose         Verbose output
    -s, --silent          Silent mode (minimal output)
    --workers <n>         Threads used for archive members (default: 4)
    --no-doc-probe        Do not probe API documentation paths
    --html                Also write an HTML report

{Fore.CYAN}Examples:{Style.RESET_ALL}
    python cli.py analyze app-release.apk -o results --html
    python cli.py scan https://example.com
    python cli.py batch targets.txt -s
""")


def parse_args(args):
    options = {
        'output': 'surface_output',
        'verbose': False,
        'silent': False,
        'workers': None,
        'doc_probe': True,
        'html': False,
    }

    positional = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ['-o', '--output']:
            if i + 1 < len(args):
                options['output'] = args[i + 1]
                i += 2
                continue
        elif arg == '--workers':
            if i + 1 < len(args) and args[i + 1].isdigit():
                options['workers'] = int(args[i + 1])
                i += 2
                continue
        elif arg in ['-v', '--verbose']:
            options['verbose'] = True
        elif arg in ['-s', '--silent']:
            options['silent'] = True
        elif arg == '--no-doc-probe':
            options['doc_probe'] = False
        elif arg == '--html':
            options['html'] = True
        elif arg in ['-h', '--help']:
            return 'help', [], options
        elif not arg.startswith('-'):
            positional.append(arg)
        i += 1

    command = positional[0] if positional else None
    targets = positional[1:] if len(positional) > 1 else []

    return command, targets, options


def build_engine(options):
    if options['verbose']:
        set_verbose(True)
    elif options['silent']:
        set_silent(True)

    config = get_default_config()
    config.output_dir = options['output']
    config.doc_probe.enabled = options['doc_probe']
    if options['workers']:
        config.archive.max_workers = options['workers']

    return SurfaceEngine(config, silent_mode=options['silent'])


def print_summary(result):
    print(f"\n{Fore.GREEN}[+] Analysis complete!{Style.RESET_ALL}")
    print(f"  Target: {result.target}")
    print(f"  Files scanned: {result.files_scanned} (skipped: {result.files_skipped})")
    print(f"  Endpoints: {result.total_endpoints}")

    by_confidence = result.endpoint_summary.get('by_confidence', {})
    if by_confidence:
        print(f"\n  {Fore.CYAN}Endpoints by confidence:{Style.RESET_ALL}")
        for level, count in by_confidence.items():
            color = Fore.RED if level == 'high' else Fore.YELLOW if level == 'medium' else Fore.WHITE
            print(f"    {color}{level.upper()}: {count}{Style.RESET_ALL}")

    ops = {op: n for op, n in result.persistence_ops.items() if n}
    if ops:
        print(f"\n  {Fore.CYAN}Persistence operations:{Style.RESET_ALL}")
        for op, count in ops.items():
            print(f"    {op}: {count}")

    by_severity = result.security_summary.get('by_severity', {})
    print(f"\n  {Fore.CYAN}Security findings: {result.security_summary.get('total_findings', 0)}{Style.RESET_ALL}")
    for severity, count in by_severity.items():
        if count:
            color = Fore.RED if severity in ('critical', 'high') else Fore.YELLOW if severity == 'medium' else Fore.WHITE
            print(f"    {color}{severity.upper()}: {count}{Style.RESET_ALL}")

    if result.permissions:
        print(f"\n  Permissions: {len(result.permissions)} "
              f"({result.security_summary.get('sensitive_permissions', 0)} sensitive)")
    if result.libraries:
        print(f"  Libraries: {', '.join(result.libraries[:10])}")


def export_result(engine, result, options):
    json_dir = engine.export_json(result, options['output'])
    if options['html']:
        html_path = engine.export_html(result, options['output'])
        if not options['silent']:
            logger.info(f"HTML report: {html_path}")
    if not options['silent']:
        logger.info(f"JSON exports: {json_dir}")


def run_analyze(target, options):
    """Analyze one application archive"""
    print_banner()
    engine = build_engine(options)

    if not options['silent']:
        print(f"\n{Fore.CYAN}ARCHIVE ANALYSIS{Style.RESET_ALL}")
        print(f"  Archive: {target}")
        print(f"  Output: {options['output']}\n")

    try:
        result = engine.analyze_archive(target)
        export_result(engine, result, options)
        if not options['silent']:
            print_summary(result)
        return result

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Analysis interrupted{Style.RESET_ALL}")
        sys.exit(1)
    except ScanError as e:
        logger.error(f"Analysis failed: {e}")
        sys.exit(1)


def run_scan(target, options):
    """Scan one live web application"""
    print_banner()
    engine = build_engine(options)

    if not options['silent']:
        print(f"\n{Fore.CYAN}WEB APPLICATION SCAN{Style.RESET_ALL}")
        print(f"  URL: {target}")
        print(f"  Output: {options['output']}")
        if not options['doc_probe']:
            print(f"  {Fore.YELLOW}API documentation probe disabled{Style.RESET_ALL}")
        print()

    try:
        result = engine.scan_web_app(target)
        export_result(engine, result, options)
        if not options['silent']:
            print_summary(result)
            if result.scripts:
                print(f"  Scripts: {len(result.scripts)}")
        return result

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Scan interrupted{Style.RESET_ALL}")
        sys.exit(1)
    except ScanError as e:
        logger.error(f"Scan failed: {e}")
        sys.exit(1)


def run_batch(path, options):
    with open(path, 'r') as f:
        batch_targets = [line.strip() for line in f if line.strip() and not line.startswith('#')]

    failed = 0
    for t in batch_targets:
        runner = run_scan if t.startswith(('http://', 'https://')) else run_analyze
        try:
            runner(t, options)
        except SystemExit:
            failed += 1

    print(f"\n{Fore.CYAN}Batch complete: {len(batch_targets) - failed}/{len(batch_targets)} succeeded{Style.RESET_ALL}")


def show_patterns():
    print_banner()

    families = [
        ("URL extraction", patterns.URL_RULES),
        ("HTTP method cues", patterns.METHOD_RULES),
        ("Persistence operations", patterns.PERSISTENCE_RULES),
        ("Payload indicators", patterns.PAYLOAD_RULES),
        ("UI elements", patterns.UI_ELEMENT_RULES),
        ("Event listeners", patterns.LISTENER_RULES),
        ("Third-party libraries", patterns.LIBRARY_RULES),
        ("Server logic", patterns.SERVER_LOGIC_RULES),
    ]

    print(f"\n{Fore.CYAN}Detection rule families:{Style.RESET_ALL}\n")

    for title, rules in families:
        print(f"  {Fore.GREEN}{title}{Style.RESET_ALL} ({len(rules)})")
        print(f"    {', '.join(rule.name for rule in rules)}\n")


def main():
    args = sys.argv[1:]

    if not args:
        print_banner()
        show_help()
        return

    command, targets, options = parse_args(args)

    if command == 'help':
        print_banner()
        show_help()
    elif command == 'analyze':
        if not targets:
            print(f"{Fore.RED}[-] Error: No archive specified{Style.RESET_ALL}")
            print(f"Usage: python cli.py analyze <archive>")
            sys.exit(1)
        run_analyze(targets[0], options)
    elif command == 'scan':
        if not targets:
            print(f"{Fore.RED}[-] Error: No URL specified{Style.RESET_ALL}")
            print(f"Usage: python cli.py scan <url>")
            sys.exit(1)
        run_scan(targets[0], options)
    elif command == 'batch':
        if not targets:
            print(f"{Fore.RED}[-] Error: No file specified{Style.RESET_ALL}")
            print(f"Usage: python cli.py batch <file>")
            sys.exit(1)
        run_batch(targets[0], options)
    elif command == 'patterns':
        show_patterns()
    else:
        print(f"{Fore.RED}[-] Unknown command: {command}{Style.RESET_ALL}")
        show_help()


if __name__ == '__main__':
    main()
