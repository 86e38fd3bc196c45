"""
Pytest fixtures for the Tokko lead scraper tests.

Everything runs against in-memory fakes and fixture text - NO browser, NO network.
"""
import pytest


# ============================================================
# Row text fixtures
# ============================================================

@pytest.fixture
def pending_header():
    return "Pendiente contactar (2)"


@pytest.fixture
def juan_row():
    return "Juan Pérez (Ana Gómez) Colombres 148 2 26/11/2025 08:15"


@pytest.fixture
def maria_row():
    return "María Paz (Ana Gómez) Lavalle 300 01/01/2020 09:00"


@pytest.fixture
def mixed_board_rows():
    """Two sections, as the board renders them in a single pass."""
    return [
        "Para reasignacion (1)",
        "Carlos Díaz (Emiliano Grieve) Benjamin Matienzo 1724 Piso 6 20/11/2025 10:00",
        "Pendiente contactar (2)",
        "Johanna Rios (Emiliano Grieve) Colombres 148 2 26/11/2025 08:15",
        "Lucía Sosa (Ana Gómez) Lavalle 300 25/11/2025 18:40",
        "Esperando respuesta (1)",
        "Pedro Gil (Ana Gómez) Av. Santa Fe 1200 24/11/2025 12:00",
    ]


# ============================================================
# Panel text fixtures
# ============================================================

@pytest.fixture
def contact_panel_text():
    return (
        "Johanna Rios\n"
        "johanna.rios@gmail.com\n"
        "Tel: 011 4555-1234\n"
        "Cel: +54 9 11 5555-6789\n"
        "Ver contacto"
    )


@pytest.fixture
def property_panel_text():
    return (
        "Departamento en venta\n"
        "Disponible MHO1234 | Venta USD 120.000\n"
        "Colombres 148 2\n"
        "Agente\n"
        "Emiliano Grieve\n"
        "Contactar"
    )


# ============================================================
# Markup fixtures
# ============================================================

@pytest.fixture
def toggle_markup():
    return '''
    <html><body>
      <div class="header">
        <div class="filters">
          <div class="reassign">
            <span class="label">Mostrar estados para reasignar</span>
            <label class="switch"><input type="checkbox" name="show_reassign"></label>
          </div>
        </div>
      </div>
    </body></html>
    '''


@pytest.fixture
def label_only_markup():
    return '''
    <html><body>
      <div id="toolbar">
        <p>Filtros</p>
        <p><a>Mostrar estados para reasignar</a></p>
      </div>
    </body></html>
    '''
