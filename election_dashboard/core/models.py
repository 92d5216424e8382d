from sqlalchemy import BigInteger, Column, Float, Text

from election_dashboard.core.database import Base

TABLE_NAME = "election_loksabha_data"


# =========================
# Election record
# =========================
class ElectionRecord(Base):
    """
    One row per candidate per constituency per election year.

    The table is loaded out-of-band and only ever read here. Column names
    keep the mixed case of the source dataset, so raw SQL has to quote them
    ("Year", "State_Name", ...).
    """

    __tablename__ = TABLE_NAME

    year = Column("Year", BigInteger, primary_key=True)
    constituency_name = Column("Constituency_Name", Text, primary_key=True)
    candidate = Column("Candidate", Text, primary_key=True)

    state_name = Column("State_Name", Text, index=True)  # "Uttar_Pradesh"
    sex = Column("Sex", Text)
    party = Column("Party", Text, index=True)
    party_type = Column("Party_Type_TCPD", Text)
    education = Column("MyNeta_education", Text)

    votes = Column("Votes", BigInteger)
    vote_share_percentage = Column("Vote_Share_Percentage", Float)
    is_winner = Column("Is_Winner", BigInteger)  # 1 winner, 0 otherwise
    position = Column("Position", BigInteger)  # 1 = winner, 2 = runner-up

    turnout_percentage = Column("Turnout_Percentage", BigInteger)
    margin = Column("Margin", BigInteger)
    margin_percentage = Column("Margin_Percentage", Float)
    electors = Column("Electors", BigInteger)
    valid_votes = Column("Valid_Votes", BigInteger)
