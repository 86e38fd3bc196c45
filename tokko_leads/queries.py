# tokko_leads/queries.py
"""Smart selector queries for Tokko Broker. Field names are read by the model as descriptions."""

# Login page - https://www.tokkobroker.com/go/
LOGIN_QUERY = """
{
  email_input
  password_input
  terms_checkbox
  privacy_checkbox
  login_button
}
"""

# Creation-date filter toggle in the Oportunidades filter bar
DATE_FILTER_QUERY = """
{
  fecha_de_creacion_filter_dropdown
}
"""

# Inside the open date filter
DATE_RANGE_QUERY = """
{
  date_range {
    start_date_input
    end_date_input
  }
  aplicar_button
}
"""
