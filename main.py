#!/usr/bin/env python3
"""
Processor Annotation Scanner v1.0
=================================
Static discovery of data processors declared through Python decorators.

Reads @data_processor, @parameter and @metric annotations from Python sources
without executing them, and reports the processors, their typed parameters
and their evaluation metrics.

Features:
  - Single file, directory or Git URL targets
  - Parallel processing for large repositories
  - Per-file error isolation (syntax errors, bad parameter names)
  - JSON report export
  - Configuration from environment, .env, YAML or JSON

Usage: python main.py [OPTIONS] <path>
"""

import sys
import os
import json
import argparse
import tempfile
import shutil
import logging
import uuid
from pathlib import Path
from typing import List, Dict, Any, Set, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Lock

import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich import box

from parsing import (
    ParseResult,
    ProcessorDescriptor,
    parse_source,
)

# =============================================================================
# VERSION
# =============================================================================
__version__ = "1.0.0"

load_dotenv()
console = Console()

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured logging for the scanner."""
    logger = logging.getLogger("processor_scanner")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler with structured format
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# =============================================================================
# CONFIGURATION - IGNORE PATTERNS
# =============================================================================
DEFAULT_IGNORE_DIRS: Set[str] = {
    # Version control
    ".git", ".svn", ".hg",
    # Python
    "__pycache__", ".pytest_cache", ".mypy_cache", ".tox", ".nox",
    "venv", ".venv", "env", ".env", "virtualenv", ".virtualenv",
    "site-packages", ".eggs", "dist", "build", "egg-info",
    # IDE/OS
    ".idea", ".vscode", ".DS_Store",
    # Notebooks
    ".ipynb_checkpoints",
}

# =============================================================================
# CONFIGURATION SYSTEM
# =============================================================================
@dataclass
class ScannerConfig:
    """
    Scanner configuration with sensible defaults.
    Can be loaded from environment variables, config file, or CLI args.
    """
    # Scanning options
    ignore_dirs: Set[str] = field(default_factory=set)
    max_file_size_mb: int = 10
    parallel_workers: int = 4

    # Annotation rules
    reject_multiple_processors: bool = False

    # Exit behaviour
    fail_on_error: bool = False  # Exit with error on bad names or syntax errors

    # Output options
    verbose: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Apply default ignore dirs if not set."""
        if not self.ignore_dirs:
            self.ignore_dirs = DEFAULT_IGNORE_DIRS.copy()

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """Load configuration from environment variables."""
        return cls(
            max_file_size_mb=int(os.getenv("SCANNER_MAX_FILE_SIZE", 10)),
            parallel_workers=int(os.getenv("SCANNER_WORKERS", 4)),
            reject_multiple_processors=os.getenv("SCANNER_SINGLE_PROCESSOR", "false").lower() == "true",
            fail_on_error=os.getenv("SCANNER_FAIL_ON_ERROR", "false").lower() == "true",
            verbose=os.getenv("SCANNER_VERBOSE", "false").lower() == "true",
            log_level=os.getenv("SCANNER_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_file(cls, path: str) -> "ScannerConfig":
        """Load configuration from JSON or YAML file."""
        with open(path, 'r') as f:
            if path.endswith(('.yaml', '.yml')):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        # Convert ignore_dirs list to set if present
        if 'ignore_dirs' in data and isinstance(data['ignore_dirs'], list):
            data['ignore_dirs'] = set(data['ignore_dirs'])

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "max_file_size_mb": self.max_file_size_mb,
            "parallel_workers": self.parallel_workers,
            "reject_multiple_processors": self.reject_multiple_processors,
            "fail_on_error": self.fail_on_error,
            "verbose": self.verbose,
            "log_level": self.log_level,
        }

# =============================================================================
# DATA MODELS
# =============================================================================
@dataclass
class FileScanResult:
    """Outcome of parsing one source file."""
    file_path: str
    result: Optional[ParseResult] = None
    error: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "ok": self.ok,
            "error": self.error,
            "diagnostics": self.diagnostics,
            "result": self.result.to_dict() if self.result else None,
        }

# =============================================================================
# SCANNER ORCHESTRATOR
# =============================================================================
class ProcessorScanner:
    """
    Repository scanner for processor annotations.
    Runs one isolated parse per Python file.

    Features:
    - Parallel file processing
    - Configurable via ScannerConfig
    - Error isolation per file
    - Progress reporting
    """

    def __init__(self, target_path: str, config: Optional[ScannerConfig] = None):
        self.target = Path(target_path)
        self.config = config or ScannerConfig.from_env()
        self.files: List[FileScanResult] = []
        self.stats = {
            "files_scanned": 0,
            "files_skipped": 0,
            "files_errored": 0,
        }
        self._lock = Lock()
        self._ignore_dirs = self.config.ignore_dirs or DEFAULT_IGNORE_DIRS

    def should_ignore(self, path: Path) -> bool:
        """Check if path should be ignored."""
        for part in path.parts:
            if part in self._ignore_dirs:
                return True
        return False

    def _scan_single_file(self, fp: Path) -> FileScanResult:
        """
        Parse a single file with error isolation.
        A bad parameter name fails this file only.
        """
        scanned = FileScanResult(file_path=str(fp))
        try:
            # Check file size
            file_size_mb = fp.stat().st_size / (1024 * 1024)
            if file_size_mb > self.config.max_file_size_mb:
                logger.warning(f"Skipping large file {fp}: {file_size_mb:.1f}MB > {self.config.max_file_size_mb}MB")
                scanned.error = "file too large"
                return scanned

            with open(fp, 'rb') as f:
                outcome = parse_source(
                    f,
                    scanned.diagnostics,
                    reject_multiple_processors=self.config.reject_multiple_processors,
                )

            if outcome.ok:
                scanned.result = outcome.result
            else:
                scanned.error = str(outcome.failure)

        except IOError as e:
            logger.debug(f"File read error {fp}: {e}")
            scanned.error = str(e)
            with self._lock:
                self.stats["files_errored"] += 1
        except Exception as e:
            logger.error(f"Unexpected error scanning {fp}: {e}")
            scanned.error = str(e)
            with self._lock:
                self.stats["files_errored"] += 1

        return scanned

    def _collect_files(self) -> List[Path]:
        """Collect all Python files under the target."""
        if self.target.is_file():
            return [self.target]

        all_files = []

        for root, dirs, files in os.walk(self.target):
            # Modify dirs in-place to skip ignored directories
            dirs[:] = sorted(d for d in dirs if d not in self._ignore_dirs)

            for f in sorted(files):
                fp = Path(root) / f
                if self.should_ignore(fp.relative_to(self.target)):
                    self.stats["files_skipped"] += 1
                    continue

                if fp.suffix.lower() == ".py":
                    all_files.append(fp)
                else:
                    self.stats["files_skipped"] += 1

        return all_files

    def scan(self, progress_cb: Optional[Callable[[int, int, Path], None]] = None) -> List[FileScanResult]:
        """
        Scan the target sequentially.
        Use scan_parallel() for large repositories.
        """
        self.files = []
        all_files = self._collect_files()

        for i, fp in enumerate(all_files):
            if progress_cb:
                progress_cb(i + 1, len(all_files), fp)

            self.files.append(self._scan_single_file(fp))
            self.stats["files_scanned"] += 1

        return self.files

    def scan_parallel(self, progress_cb: Optional[Callable[[int, int, Path], None]] = None) -> List[FileScanResult]:
        """
        Parallel file scanning for large repositories.
        Each parse owns its state, so workers share nothing but the stats.
        """
        self.files = []
        all_files = self._collect_files()
        completed = 0

        logger.info(f"Starting parallel scan with {self.config.parallel_workers} workers")

        with ThreadPoolExecutor(max_workers=self.config.parallel_workers) as executor:
            # Submit all file scan tasks
            future_to_file = {
                executor.submit(self._scan_single_file, fp): fp
                for fp in all_files
            }

            # Process results as they complete
            for future in as_completed(future_to_file):
                fp = future_to_file[future]
                completed += 1

                if progress_cb:
                    progress_cb(completed, len(all_files), fp)

                try:
                    scanned = future.result()

                    with self._lock:
                        self.files.append(scanned)
                        self.stats["files_scanned"] += 1

                except Exception as e:
                    logger.error(f"Task error for {fp}: {e}")
                    with self._lock:
                        self.stats["files_errored"] += 1

        # Keep report order stable regardless of completion order
        self.files.sort(key=lambda s: s.file_path)

        logger.info(f"Parallel scan complete: {self.stats['files_scanned']} files")
        return self.files

    def processors(self) -> List[Dict[str, Any]]:
        """All processors found, each with the file it was declared in."""
        found = []
        for scanned in self.files:
            if not scanned.result:
                continue
            for processor in scanned.result.processors:
                params = [p for p in scanned.result.parameters if p.processor_id == processor.id]
                found.append({"file_path": scanned.file_path, "processor": processor, "parameters": params})
        return found

    def summary(self) -> Dict[str, Any]:
        """Generate summary statistics."""
        totals = {"functions": 0, "decorated_functions": 0, "parameters": 0, "processors": 0, "metrics": 0}
        by_type: Dict[str, int] = {}
        by_input: Dict[str, int] = {}

        for scanned in self.files:
            if not scanned.result:
                continue
            for key, value in scanned.result.counters().items():
                totals[key] += value
            for processor in scanned.result.processors:
                by_type[processor.processor_type.value] = by_type.get(processor.processor_type.value, 0) + 1
                by_input[processor.input_type.value] = by_input.get(processor.input_type.value, 0) + 1

        return {
            **totals,
            "files_scanned": self.stats["files_scanned"],
            "files_skipped": self.stats["files_skipped"],
            "files_errored": self.stats["files_errored"],
            "files_failed": len([s for s in self.files if not s.ok]),
            "files_with_syntax_errors": len([s for s in self.files if s.diagnostics]),
            "by_processor_type": by_type,
            "by_input_type": by_input,
        }

# =============================================================================
# OUTPUT FORMATTERS
# =============================================================================
def fmt_type(p: ProcessorDescriptor) -> str:
    colors = {"OPERATION": "cyan", "ALGORITHM": "magenta", "VISUALIZATION": "green"}
    color = colors.get(p.processor_type.value, "white")
    return f"[{color}]{p.processor_type.value}[/{color}]"

def make_table(found: List[Dict[str, Any]]) -> Table:
    t = Table(title=" Discovered Processors", box=box.ROUNDED, header_style="bold magenta")
    t.add_column("#", style="dim", width=4)
    t.add_column("Slug", style="cyan", max_width=30)
    t.add_column("Type", width=14)
    t.add_column("Input", width=12)
    t.add_column("Output", width=12)
    t.add_column("Visibility", width=10)
    t.add_column("Params", width=6)
    t.add_column("File", style="dim", max_width=30)

    for i, entry in enumerate(found[:100], 1):
        p = entry["processor"]
        t.add_row(
            str(i), p.slug, fmt_type(p), p.input_type.value,
            p.output_type.value if p.output_type else "-",
            p.visibility.value, str(len(entry["parameters"])),
            Path(entry["file_path"]).name,
        )

    if len(found) > 100:
        t.add_row("...", f"... +{len(found) - 100} more", "", "", "", "", "", "")

    return t

def make_summary(s: Dict[str, Any]) -> Panel:
    txt = f"""
[bold cyan] Scan Summary[/bold cyan]

[bold]Files Scanned:[/bold] {s['files_scanned']} | Skipped: {s['files_skipped']} | Failed: {s['files_failed']}
[bold]Syntax Errors:[/bold] {s['files_with_syntax_errors']} files

[bold cyan]Annotations:[/bold cyan]
   Functions: {s['functions']} ({s['decorated_functions']} annotated)
   Processors: {s['processors']}
   Parameters: {s['parameters']}
   Metrics: {s['metrics']}

[bold cyan]By Processor Type:[/bold cyan]
""" + "\n".join([f"   {k}: {v}" for k, v in sorted(s['by_processor_type'].items(), key=lambda x: -x[1])])

    return Panel(txt, title=" Analysis Results", border_style="cyan")

# =============================================================================
# GIT HELPER
# =============================================================================
def clone_repo(url: str) -> str:
    import git
    tmp = tempfile.mkdtemp(prefix="processor_scan_")
    console.print(f"[cyan]Cloning: {url}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print(f"[green] Cloned[/green]")
    return tmp

# =============================================================================
# MAIN CLI
# =============================================================================
def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description=f"Processor Annotation Scanner v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ./src                          # Basic scan
  python main.py train.py                       # Single file
  python main.py ./src --parallel               # Parallel scan for large repos
  python main.py ./src -o processors.json       # Export JSON report
  python main.py ./src --fail-on-error          # CI gate mode
  python main.py https://host/repo.git          # Scan a Git repository
        """
    )

    # Target
    parser.add_argument("target", help="Python file, directory or Git URL to scan")

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("-o", "--output", help="Output JSON file")

    # Scan options
    scan_group = parser.add_argument_group("Scan Options")
    scan_group.add_argument("--parallel", action="store_true",
                           help="Enable parallel file scanning")
    scan_group.add_argument("--workers", type=int, default=None,
                           help="Number of parallel workers (default: 4)")
    scan_group.add_argument("--max-file-size", type=int, default=None,
                           help="Max file size in MB to scan (default: 10)")
    scan_group.add_argument("--config", metavar="FILE",
                           help="Configuration file (JSON/YAML)")
    scan_group.add_argument("--single-processor", action="store_true",
                           help="Skip any @data_processor after the first on a function")

    # Exit behaviour
    policy_group = parser.add_argument_group("CI Options")
    policy_group.add_argument("--fail-on-error", action="store_true",
                             help="Exit with error on bad parameter names or syntax errors")

    # Logging
    log_group = parser.add_argument_group("Logging")
    log_group.add_argument("--log-level", default=None,
                          help="Log level (default: INFO)")
    log_group.add_argument("--log-file", metavar="FILE",
                          help="Write JSON-lines log to file")

    # General
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    args = parser.parse_args(argv)

    # Banner
    if not args.quiet:
        console.print(Panel.fit(
            f"[bold cyan] Processor Annotation Scanner v{__version__}[/bold cyan]\n"
            "[dim]@data_processor | @parameter | @metric[/dim]",
            border_style="cyan"
        ))

    # Initialize
    scan_id = str(uuid.uuid4())[:8]
    target = args.target
    tmp = None
    config = None
    exit_code = 0

    try:
        # Build configuration
        if args.config:
            config = ScannerConfig.from_file(args.config)
        else:
            config = ScannerConfig.from_env()

        # Override with CLI args
        if args.workers is not None:
            config.parallel_workers = args.workers
        if args.max_file_size is not None:
            config.max_file_size_mb = args.max_file_size
        if args.log_level:
            config.log_level = args.log_level
        config.verbose = config.verbose or args.verbose
        config.fail_on_error = config.fail_on_error or args.fail_on_error
        config.reject_multiple_processors = config.reject_multiple_processors or args.single_processor

        setup_logging(config.log_level, args.log_file)

        # Clone if URL
        if target.startswith(("http://", "https://", "git@")):
            tmp = clone_repo(target)
            target = tmp
        elif not os.path.exists(target):
            console.print(f"[red]Error: {target} not found[/red]")
            sys.exit(1)

        scanner = ProcessorScanner(target, config)

        if not args.quiet:
            console.print(f"\n[bold cyan] Scanning...[/bold cyan] [dim](scan_id: {scan_id})[/dim]")

        # Progress callback
        def progress_cb(cur, tot, fp):
            if not args.quiet:
                prog.update(task, completed=(cur / tot) * 100,
                           description=f"[cyan]{Path(fp).name[:25]}")

        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                     BarColumn(), TextColumn("{task.percentage:>3.0f}%"),
                     console=console, disable=args.quiet) as prog:
            task = prog.add_task("[cyan]Scanning", total=100)

            if args.parallel:
                files = scanner.scan_parallel(progress_cb=progress_cb)
            else:
                files = scanner.scan(progress_cb=progress_cb)

        summary = scanner.summary()
        found = scanner.processors()

        # Print results
        if not args.quiet:
            console.print(f"\n[green] Found {len(found)} processors[/green]")
            console.print("\n" + "=" * 70)
            console.print(make_summary(summary))
            console.print()

            if found:
                console.print(make_table(found))

            failed = [s for s in files if not s.ok]
            if failed:
                console.print("\n[bold red] FAILED FILES[/bold red]")
                for s in failed[:10]:
                    console.print(f"   {s.file_path}: {s.error}")

            for s in [s for s in files if s.diagnostics][:10]:
                console.print(f"\n[bold yellow] {s.file_path}[/bold yellow]")
                for d in s.diagnostics[:3]:
                    console.print(f"     {d}")

        # Export outputs
        if args.output:
            data = {
                "timestamp": datetime.now().isoformat(),
                "scan_id": scan_id,
                "target": args.target,
                "version": __version__,
                "config": config.to_dict(),
                "summary": summary,
                "files": [s.to_dict() for s in files],
            }
            with open(args.output, 'w') as f:
                json.dump(data, f, indent=2)
            if not args.quiet:
                console.print(f"\n[green] Saved: {args.output}[/green]")

        # Determine exit code
        if config.fail_on_error and (summary["files_failed"] or summary["files_with_syntax_errors"]):
            if not args.quiet:
                console.print("\n[bold red] Failed: invalid annotations or syntax errors detected[/bold red]")
            exit_code = 1

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red]Error: {e}[/red]")
        if args.verbose or (config and config.verbose):
            console.print_exception()
        sys.exit(1)
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    if not args.quiet and exit_code == 0:
        console.print("\n[bold green] Complete![/bold green]")

    sys.exit(exit_code)

if __name__ == "__main__":
    main()
