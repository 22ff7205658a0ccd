"""
hotel_booking - 酒店预订定价与入住规则模型
"""
