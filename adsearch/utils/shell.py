#!/usr/bin/env python3
from adsearch.utils.colors import bcolors

def get_prompt(adsearch):
    conn = adsearch.conn
    proto = conn.get_proto() or "LDAP"
    address = conn.get_ldap_address() or "<server>"
    cur_user = conn.who_am_i()
    backend = adsearch.backend.name

    return (
        f"{bcolors.WARNING}{bcolors.BOLD}({proto}){bcolors.ENDC}"
        f"{bcolors.OKBLUE}-[{bcolors.ENDC}{bcolors.OKCYAN}{address}{bcolors.ENDC}{bcolors.OKBLUE}]{bcolors.ENDC}"
        f"{bcolors.OKBLUE}-[{bcolors.ENDC}{cur_user}{bcolors.OKBLUE}]{bcolors.ENDC}"
        f"{bcolors.GREY}-[{backend}]{bcolors.ENDC}"
        f"\n{bcolors.OKBLUE}AD{bcolors.ENDC} {bcolors.OKGREEN}❯{bcolors.ENDC} "
    )
