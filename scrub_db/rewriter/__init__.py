from scrub_db.rewriter.rewriter import DumpRewriter, build_rewriter
from scrub_db.rewriter.scanner import DumpScanner

__all__ = ["DumpRewriter", "DumpScanner", "build_rewriter"]
