from sqlalchemy import Column, String, Integer, BigInteger, Index
from .db import Base

# -----------------------------
# ORM model for canonical flow records
# -----------------------------
class Flow(Base):
    __tablename__ = "flows"
    # One row per normalized goflow2 record; nanosecond instants are epoch ns
    id                 = Column(Integer, primary_key=True, autoincrement=True)
    time_received_ns   = Column(BigInteger, nullable=False, index=True)
    sequence_num       = Column(BigInteger, nullable=False)
    time_flow_start_ns = Column(BigInteger, nullable=False)
    time_flow_end_ns   = Column(BigInteger, nullable=False)
    bytes              = Column(BigInteger, nullable=False)
    packets            = Column(BigInteger, nullable=False)
    src_addr           = Column(String(45), nullable=False)     # v4 or v6 text form
    dst_addr           = Column(String(45), nullable=False)
    src_port           = Column(Integer, nullable=False)
    dst_port           = Column(Integer, nullable=False)
    etype              = Column(Integer, nullable=False)        # -1 = unknown
    proto              = Column(Integer, nullable=False)        # -1 = unknown
    post_nat_src_ipv4_address    = Column(String(15))           # NULL when no NAT
    post_nat_dst_ipv4_address    = Column(String(15))
    post_napt_src_transport_port = Column(Integer)
    post_napt_dst_transport_port = Column(Integer)

    __table_args__ = (
        Index("ix_flows_src_dst", "src_addr", "dst_addr"),
    )

    def __repr__(self):
        return (
            f"<Flow(id={self.id}, seq={self.sequence_num}, proto={self.proto}, "
            f"{self.src_addr}:{self.src_port} -> {self.dst_addr}:{self.dst_port})>"
        )
