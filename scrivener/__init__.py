from scrivener.listing import RUST_LAYOUT, ListingLayout, SectionView, plan_view, render_listing
from scrivener.render import DocumentRenderer, render_document
from scrivener.document_parser import parse_document_text
from scrivener.section import Section
from scrivener.store import FileState, FragmentStore
from scrivener.workbook import DEFAULT_BETWEEN_TEXT, NoMatchingFragmentError, Workbook
