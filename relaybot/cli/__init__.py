"""relaybot命令行接口。"""
