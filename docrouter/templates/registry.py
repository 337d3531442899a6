"""Folder template registry

Two fixed project folder hierarchies ship with the router. ``LUNGO`` is the
full structure used for long, complex jobs and ``BREVE`` the reduced one for
short jobs. Trees are nested dicts, an empty dict marks a leaf folder.
"""

from typing import Dict, List

from docrouter.errors import TemplateNotFoundError


FolderTree = Dict[str, "FolderTree"]

TEMPLATE_LUNGO: FolderTree = {
    "1_CONSEGNA": {},
    "2_PERMIT": {},
    "3_PROGETTO": {
        "ARC": {},
        "CME": {},
        "CRONO_CAPITOLATI_MANUT": {},
        "IE": {},
        "IM": {},
        "IS": {},
        "REL": {},
        "SIC": {},
        "STR": {},
        "X_RIF": {},
    },
    "4_MATERIALE_RICEVUTO": {},
    "5_CANTIERE": {
        "0_PSC_FE": {},
        "IMPRESA": {
            "CONTRATTO": {},
            "CONTROLLI": {},
            "DOCUMENTI": {},
        },
    },
    "6_VERBALI_NOTIF_COMUNICAZIONI": {
        "COMUNICAZIONI": {},
        "NP": {},
        "ODS": {},
        "VERBALI": {},
    },
    "7_SOPRALLUOGHI": {},
    "8_VARIANTI": {},
    "9_PARCELLA": {},
    "10_INCARICO": {},
}

TEMPLATE_BREVE: FolderTree = {
    "CONSEGNA": {},
    "ELABORAZIONI": {},
    "MATERIALE_RICEVUTO": {},
    "SOPRALLUOGHI": {},
}

TEMPLATES: Dict[str, FolderTree] = {
    "LUNGO": TEMPLATE_LUNGO,
    "BREVE": TEMPLATE_BREVE,
}

TEMPLATE_NAMES = tuple(TEMPLATES)

TEMPLATE_TITLES = {
    "LUNGO": "LUNGO - Progetti complessi",
    "BREVE": "BREVE - Progetti semplici",
}

_LUNGO_STRUCTURE_TEXT = """
1_CONSEGNA/ - Documenti cliente e brief progetto
2_PERMIT/ - Permessi e autorizzazioni
3_PROGETTO/ - Elaborati tecnici principali
  ├── ARC/ - Architettonici (piante, prospetti, sezioni)
  ├── CME/ - Computo metrico estimativo
  ├── CRONO_CAPITOLATI_MANUT/ - Cronoprogramma, capitolati e piano di manutenzione
  ├── IE/ - Impianti elettrici
  ├── IM/ - Impianti meccanici
  ├── IS/ - Impianti speciali
  ├── REL/ - Relazioni tecniche
  ├── SIC/ - Sicurezza cantiere
  ├── STR/ - Strutturali (calcoli, carpenteria)
  └── X_RIF/ - Riferimenti e standard
4_MATERIALE_RICEVUTO/ - Documenti ricevuti da terzi
5_CANTIERE/ - Documentazione cantiere
  ├── 0_PSC_FE/ - Piano sicurezza e fascicolo dell'opera
  └── IMPRESA/ - Documentazione impresa
      ├── CONTRATTO/ - Contratti
      ├── CONTROLLI/ - Controlli qualità
      └── DOCUMENTI/ - Altri documenti impresa
6_VERBALI_NOTIF_COMUNICAZIONI/ - Comunicazioni ufficiali
  ├── COMUNICAZIONI/ - Comunicazioni generali
  ├── NP/ - Nuovi prezzi
  ├── ODS/ - Ordini di servizio
  └── VERBALI/ - Verbali riunioni
7_SOPRALLUOGHI/ - Report sopralluoghi
8_VARIANTI/ - Varianti progettuali
9_PARCELLA/ - Fatturazione e parcelle
10_INCARICO/ - Documenti incarico"""

_BREVE_STRUCTURE_TEXT = """
CONSEGNA/ - Documenti cliente e brief
ELABORAZIONI/ - Elaborati tecnici
MATERIALE_RICEVUTO/ - Documenti terzi
SOPRALLUOGHI/ - Report sopralluoghi"""

_STRUCTURE_TEXTS = {
    "LUNGO": _LUNGO_STRUCTURE_TEXT,
    "BREVE": _BREVE_STRUCTURE_TEXT,
}


def get_template_tree(template: str) -> FolderTree:
    """Return the folder tree for ``template``

    Raises:
        TemplateNotFoundError: If the template is not registered
    """
    try:
        return TEMPLATES[template]
    except (KeyError, TypeError):
        raise TemplateNotFoundError(template, list(TEMPLATE_NAMES))


def flatten_tree(tree: FolderTree, base_path: str = "") -> List[str]:
    """Depth-first flattening, every parent precedes its children"""
    folders = []
    for name, subtree in tree.items():
        current = f"{base_path}/{name}" if base_path else name
        folders.append(current)
        if subtree:
            folders.extend(flatten_tree(subtree, current))
    return folders


def get_available_folders(template: str) -> List[str]:
    """Slash-joined relative paths of every folder in ``template``

    Paths carry no trailing slash, e.g. ``3_PROGETTO/ARC``.

    Raises:
        TemplateNotFoundError: If the template is not registered
    """
    return flatten_tree(get_template_tree(template))


def get_template_structure_text(template: str) -> str:
    """Annotated description of the template hierarchy, used in AI prompts"""
    get_template_tree(template)
    return _STRUCTURE_TEXTS[template]


def normalize_folder_path(path: str) -> str:
    """Strip surrounding whitespace and slashes, the registry form of a path"""
    return path.strip().strip("/")


def with_trailing_slash(path: str) -> str:
    return normalize_folder_path(path) + "/"


def is_template_folder(template: str, path: str) -> bool:
    """True when ``path`` (with or without trailing slash) belongs to ``template``"""
    return normalize_folder_path(path) in get_available_folders(template)
