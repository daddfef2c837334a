"""아바타 오버레이 패키지 루트."""
